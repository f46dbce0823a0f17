"""
URL configuration for inventory app.
"""

from django.urls import path

from . import views

app_name = "inventory"

urlpatterns = [
    # Catalog
    path("categories/", views.CategoryListCreateView.as_view(), name="category_list"),
    path("categories/<uuid:id>/", views.CategoryDetailView.as_view(), name="category_detail"),
    path("products/", views.ProductListCreateView.as_view(), name="product_list"),
    path("products/<uuid:id>/", views.ProductDetailView.as_view(), name="product_detail"),
    path(
        "products/barcode/<str:barcode>/",
        views.lookup_by_barcode,
        name="lookup_by_barcode",
    ),
    # Stock levels
    path("inventory/", views.InventoryListView.as_view(), name="inventory_list"),
    path("inventory/low-stock/", views.low_stock, name="low_stock"),
    path("inventory/update/", views.update_stock, name="update_stock"),
    path("inventory/adjust/", views.adjust_stock, name="adjust_stock"),
    # Suppliers and purchases
    path("suppliers/", views.SupplierListCreateView.as_view(), name="supplier_list"),
    path("suppliers/<uuid:id>/", views.SupplierDetailView.as_view(), name="supplier_detail"),
    path(
        "purchase-orders/",
        views.PurchaseOrderListCreateView.as_view(),
        name="purchase_order_list",
    ),
    path(
        "purchase-orders/<uuid:id>/",
        views.PurchaseOrderDetailView.as_view(),
        name="purchase_order_detail",
    ),
    path(
        "purchase-orders/<uuid:po_id>/receive/",
        views.receive_purchase_order,
        name="purchase_order_receive",
    ),
    path(
        "purchase-orders/<uuid:po_id>/cancel/",
        views.cancel_purchase_order,
        name="purchase_order_cancel",
    ),
    # Stock transfers
    path("transfers/", views.StockTransferListCreateView.as_view(), name="transfer_list"),
    path("transfers/<uuid:id>/", views.StockTransferDetailView.as_view(), name="transfer_detail"),
    path("transfers/<uuid:transfer_id>/ship/", views.ship_transfer, name="transfer_ship"),
    path(
        "transfers/<uuid:transfer_id>/receive/",
        views.receive_transfer,
        name="transfer_receive",
    ),
    path("transfers/<uuid:transfer_id>/cancel/", views.cancel_transfer, name="transfer_cancel"),
]
