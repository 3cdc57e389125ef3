from django.urls import path

from . import views

urlpatterns = [
    # JSON endpoint for build allocation
    path("calculate/", views.calculate_build, name="calculate_build"),
]
