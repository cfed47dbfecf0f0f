import uuid
from django.db import models


class CustomerModel(models.Model):
    # id issued by the upstream session gateway
    id = models.CharField(primary_key=True, max_length=64)
    name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=32, blank=True, default="")

    class Meta:
        db_table = "customers"


class CartItemModel(models.Model):
    customer = models.ForeignKey(CustomerModel, on_delete=models.CASCADE, related_name="cart_items")
    product_id = models.CharField(max_length=64)
    quantity = models.PositiveIntegerField()
    variant = models.JSONField(default=dict, blank=True)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "cart_items"
        ordering = ["added_at", "id"]


class OrderModel(models.Model):
    # UUID PK exposed in the API
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Display number, checked for collisions on create
    order_number = models.CharField(max_length=40, db_index=True, editable=False)

    class Status(models.TextChoices):
        PENDING = "pending"
        PROCESSING = "processing"
        SHIPPED = "shipped"
        DELIVERED = "delivered"
        CANCELLED = "cancelled"

    customer_id = models.CharField(max_length=64, db_index=True)
    customer_name = models.CharField(max_length=100)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=32, blank=True, default="")

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    tax = models.DecimalField(max_digits=12, decimal_places=2)
    shipping = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2)

    shipping_address = models.JSONField(default=dict)

    payment_method = models.CharField(max_length=20)
    payment_status = models.CharField(max_length=20, default="completed")
    transaction_id = models.CharField(max_length=100, blank=True, default="")
    card_last_four = models.CharField(max_length=4, blank=True, default="")

    notes = models.TextField(blank=True, default="")
    promo_code = models.CharField(max_length=50, blank=True, default="")

    carrier = models.CharField(max_length=100, blank=True, default="")
    tracking_number = models.CharField(max_length=100, blank=True, default="")
    estimated_delivery = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]


class OrderLineModel(models.Model):
    order = models.ForeignKey(OrderModel, on_delete=models.CASCADE, related_name="lines")
    position = models.PositiveSmallIntegerField()
    product_id = models.CharField(max_length=64)
    name = models.CharField(max_length=200)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    line_total = models.DecimalField(max_digits=12, decimal_places=2)
    variant = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = "order_lines"
        ordering = ["position"]


class OrderStatusEventModel(models.Model):
    order = models.ForeignKey(OrderModel, on_delete=models.CASCADE, related_name="history")
    status = models.CharField(max_length=16, choices=OrderModel.Status.choices)
    changed_at = models.DateTimeField()
    actor = models.CharField(max_length=64, blank=True, default="")
    note = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        db_table = "order_status_events"
        ordering = ["changed_at", "id"]
