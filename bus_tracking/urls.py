from django.urls import path
from .views import BusListAPIView, BusStreamView

app_name = "bus_tracking"

urlpatterns = [
    path("api/buses/", BusListAPIView.as_view(), name="bus-list"),
    path("api/buses/stream/", BusStreamView.as_view(), name="bus-stream"),
]
