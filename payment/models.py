from django.db import models
from orders.models import Table, Order, OrderItem


class Payment(models.Model):
	SUCCEEDED = 'succeeded'
	FAILED = 'failed'
	REFUNDED = 'refunded'
	STATUS_CHOICES = [
		(SUCCEEDED, 'Succeeded'),
		(FAILED, 'Failed'),
		(REFUNDED, 'Refunded'),
	]

	table = models.ForeignKey(Table, on_delete=models.CASCADE, related_name='payments')
	# Receipt order for partial payments, the paid order for full payments
	order = models.ForeignKey(Order, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
	settled_items = models.ManyToManyField(OrderItem, blank=True, related_name='payments')
	provider = models.CharField(max_length=20)
	provider_ref = models.CharField(max_length=100, unique=True)
	amount_p = models.PositiveIntegerField()
	currency = models.CharField(max_length=3, default='egp')
	payment_method = models.CharField(max_length=50, blank=True)
	customer_email = models.EmailField(blank=True)
	status = models.CharField(max_length=20, choices=STATUS_CHOICES)
	failure_reason = models.CharField(max_length=200, blank=True, null=True)
	idempotency_key = models.CharField(max_length=100, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)
	confirmed_at = models.DateTimeField(null=True, blank=True)

	def __str__(self):
		return f"Payment {self.provider_ref} for Table {self.table.number} - {self.status}"
