from django.urls import path

from charge_planner import views

urlpatterns = [
    path("api/v1/health", views.health_view, name="health"),
    path("api/v1/charging-stations", views.charging_stations_view, name="charging-stations"),
    path("api/v1/charging-plan", views.charging_plan_view, name="charging-plan"),
]
