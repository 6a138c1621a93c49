from django.urls import include, path

urlpatterns = [
    path("", include("bus_tracking.urls")),
]
