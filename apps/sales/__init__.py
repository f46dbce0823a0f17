"""
Sales app: POS sales, refunds, coupons, shifts and installment plans.
"""
