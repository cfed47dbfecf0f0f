from django.urls import include, path

from apps.monitoring.api import health_view

urlpatterns = [
    path("health/", health_view, name="health"),
    path("api/orders/", include("apps.orders.urls")),
    path("api/cart/", include("apps.orders.cart_urls")),
]
