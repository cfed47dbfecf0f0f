from django.urls import path
from .views import (
    BulkStatusView,
    CustomerOrdersView,
    OrdersCollectionView,
    OrdersPingView,
    OrderStatsView,
    OrderStatusView,
    RecentOrdersView,
    RetrieveOrderView,
)
app_name = "orders"

# literal segments before <uuid:oid>/
urlpatterns = [
    path("ping/", OrdersPingView.as_view(), name="ping"),
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # GET list / POST create
    path("stats/", OrderStatsView.as_view(), name="orders-stats"),
    path("recent/", RecentOrdersView.as_view(), name="orders-recent"),
    path("bulk-status/", BulkStatusView.as_view(), name="orders-bulk-status"),
    path("customer/<str:customer_id>/", CustomerOrdersView.as_view(), name="orders-customer"),
    path("<uuid:oid>/", RetrieveOrderView.as_view(), name="orders-detail"),  # GET / DELETE (cancel)
    path("<uuid:oid>/status/", OrderStatusView.as_view(), name="orders-status"),
]
