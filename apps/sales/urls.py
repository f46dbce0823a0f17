"""
URL configuration for sales app.
"""

from django.urls import path

from . import views

app_name = "sales"

urlpatterns = [
    # POS and sales
    path("pos/sales/", views.pos_create_sale, name="pos_create_sale"),
    path("sales/", views.SaleListView.as_view(), name="sale_list"),
    path("sales/<uuid:id>/", views.SaleDetailView.as_view(), name="sale_detail"),
    path("sales/<uuid:sale_id>/refund/", views.refund_sale, name="sale_refund"),
    path("sales/return-reasons/", views.return_reasons, name="return_reasons"),
    # Discounts
    path("discounts/", views.DiscountListCreateView.as_view(), name="discount_list"),
    path("discounts/<uuid:id>/", views.DiscountDetailView.as_view(), name="discount_detail"),
    path("discounts/code/<str:code>/", views.validate_coupon, name="validate_coupon"),
    # Shifts
    path("shifts/", views.ShiftListView.as_view(), name="shift_list"),
    path("shifts/current/", views.current_shift, name="current_shift"),
    path("shifts/open/", views.open_shift, name="open_shift"),
    path("shifts/<uuid:id>/", views.ShiftDetailView.as_view(), name="shift_detail"),
    path("shifts/<uuid:shift_id>/close/", views.close_shift, name="close_shift"),
    path(
        "shifts/<uuid:shift_id>/transactions/",
        views.add_cash_transaction,
        name="shift_transaction",
    ),
    # Installments
    path("installments/", views.InstallmentListView.as_view(), name="installment_list"),
    path("installments/overdue/", views.overdue_installments, name="installment_overdue"),
    path(
        "installments/<uuid:id>/",
        views.InstallmentDetailView.as_view(),
        name="installment_detail",
    ),
    path(
        "installments/<uuid:installment_id>/payments/",
        views.add_installment_payment,
        name="installment_payment",
    ),
]
