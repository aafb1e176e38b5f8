from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Restaurant(models.Model):
	name = models.CharField(max_length=200)
	address = models.CharField(max_length=300, blank=True)
	phone = models.CharField(max_length=50, blank=True)
	email = models.EmailField(blank=True)
	tax_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal('0.14'))
	service_charge_rate = models.DecimalField(max_digits=5, decimal_places=4, default=Decimal('0.12'))

	def __str__(self):
		return self.name

	@classmethod
	def get_default(cls):
		"""The single restaurant this deployment serves, created on first use"""
		restaurant = cls.objects.order_by('id').first()
		if restaurant is None:
			restaurant = cls.objects.create(
				name='Default Restaurant',
				tax_rate=settings.DEFAULT_TAX_RATE,
				service_charge_rate=settings.DEFAULT_SERVICE_CHARGE_RATE,
			)
		return restaurant


class Table(models.Model):
	AVAILABLE = 'AVAILABLE'
	OCCUPIED = 'OCCUPIED'
	RESERVED = 'RESERVED'
	OUT_OF_SERVICE = 'OUT_OF_SERVICE'
	STATUS_CHOICES = [
		(AVAILABLE, 'Available'),
		(OCCUPIED, 'Occupied'),
		(RESERVED, 'Reserved'),
		(OUT_OF_SERVICE, 'Out of service'),
	]
	restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='tables')
	number = models.CharField(max_length=20)
	capacity = models.PositiveIntegerField(default=4)
	status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=AVAILABLE)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		constraints = [
			models.UniqueConstraint(fields=['restaurant', 'number'], name='unique_table_number_per_restaurant'),
		]
		ordering = ['number']

	def __str__(self):
		return f"Table {self.number}"


class MenuItem(models.Model):
	restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='menu_items')
	name = models.CharField(max_length=100)
	description = models.TextField(blank=True)
	category = models.CharField(max_length=100, blank=True)
	price_p = models.PositiveIntegerField()
	image = models.URLField(max_length=500, blank=True)
	is_available = models.BooleanField(default=True)
	sort_order = models.PositiveIntegerField(default=0)

	class Meta:
		ordering = ['category', 'sort_order', 'name']

	def __str__(self):
		return self.name


class Order(models.Model):
	PENDING = 'PENDING'
	CONFIRMED = 'CONFIRMED'
	PREPARING = 'PREPARING'
	READY = 'READY'
	COMPLETED = 'COMPLETED'
	STATUS_CHOICES = [
		(PENDING, 'Pending'),
		(CONFIRMED, 'Confirmed'),
		(PREPARING, 'Preparing'),
		(READY, 'Ready'),
		(COMPLETED, 'Completed'),
	]

	PAYMENT_PENDING = 'PENDING'
	PAYMENT_COMPLETED = 'COMPLETED'
	PAYMENT_FAILED = 'FAILED'
	PAYMENT_STATUS_CHOICES = [
		(PAYMENT_PENDING, 'Pending'),
		(PAYMENT_COMPLETED, 'Completed'),
		(PAYMENT_FAILED, 'Failed'),
	]

	order_number = models.CharField(max_length=50, unique=True)
	table = models.ForeignKey(Table, on_delete=models.PROTECT, related_name='orders')
	restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='orders')
	bill_split = models.ForeignKey('billsplit.BillSplit', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
	person = models.ForeignKey('billsplit.Person', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
	customer_email = models.EmailField(blank=True)
	special_requests = models.TextField(blank=True)
	subtotal_p = models.PositiveIntegerField(default=0)
	tax_p = models.PositiveIntegerField(default=0)
	service_charge_p = models.PositiveIntegerField(default=0)
	tip_p = models.PositiveIntegerField(default=0)
	total_p = models.PositiveIntegerField(default=0)
	status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
	payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
	payment_method = models.CharField(max_length=50, blank=True)
	payment_ref = models.CharField(max_length=100, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ['-created_at']

	def __str__(self):
		return f"Order {self.order_number} (Table {self.table.number})"


class OrderItem(models.Model):
	order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
	menu_item = models.ForeignKey(MenuItem, on_delete=models.PROTECT)
	quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
	unit_price_p = models.PositiveIntegerField()
	total_price_p = models.PositiveIntegerField()
	notes = models.CharField(max_length=300, blank=True)
	is_paid = models.BooleanField(default=False)
	paid_at = models.DateTimeField(null=True, blank=True)

	def __str__(self):
		return f"{self.quantity} x {self.menu_item.name} for Order {self.order.order_number}"
