from django.urls import path

from . import views

app_name = "restaurant"

urlpatterns = [
    # Tables
    path("tables/", views.RestaurantTableListCreateView.as_view(), name="table_list"),
    path("tables/<uuid:id>/", views.RestaurantTableDetailView.as_view(), name="table_detail"),
    # Orders
    path("orders/", views.OrderListView.as_view(), name="order_list"),
    path("orders/kitchen/", views.kitchen_orders, name="kitchen_orders"),
    path("orders/<uuid:id>/", views.OrderDetailView.as_view(), name="order_detail"),
    path("orders/<uuid:order_id>/items/", views.add_order_items, name="order_add_items"),
    path("orders/<uuid:order_id>/status/", views.update_order_status, name="order_status"),
    path("orders/<uuid:order_id>/checkout/", views.checkout_order, name="order_checkout"),
    path("orders/<uuid:order_id>/cancel/", views.cancel_order, name="order_cancel"),
]
