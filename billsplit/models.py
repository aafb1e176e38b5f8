from django.db import models
from orders.models import Table


class BillSplit(models.Model):
	EQUAL = 'equal'
	ITEMIZED = 'itemized'
	SPLIT_TYPE_CHOICES = [
		(EQUAL, 'Equal'),
		(ITEMIZED, 'Itemized'),
	]
	table = models.ForeignKey(Table, on_delete=models.CASCADE, related_name='bill_splits')
	session_id = models.CharField(max_length=100, unique=True)
	total_people = models.PositiveIntegerField()
	split_type = models.CharField(max_length=10, choices=SPLIT_TYPE_CHOICES, default=EQUAL)
	# Order item ids up for selection in an itemized split
	available_items = models.JSONField(null=True, blank=True)
	is_active = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ['-created_at']

	def __str__(self):
		return f"Split {self.session_id} (Table {self.table.number}, {self.total_people} people)"


class Person(models.Model):
	CREATED = 'CREATED'
	ORDERING = 'ORDERING'
	COMPLETED = 'COMPLETED'

	bill_split = models.ForeignKey(BillSplit, on_delete=models.CASCADE, related_name='persons')
	person_number = models.PositiveIntegerField()
	name = models.CharField(max_length=100, blank=True)
	qr_code = models.TextField(help_text='QR code as a PNG data URL')
	total_amount_p = models.PositiveIntegerField(default=0)
	is_completed = models.BooleanField(default=False)
	completed_at = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		constraints = [
			models.UniqueConstraint(fields=['bill_split', 'person_number'], name='unique_person_number_per_split'),
		]
		ordering = ['person_number']

	def __str__(self):
		return self.name or f"Person {self.person_number}"

	def has_orders(self):
		# order_count is annotated when persons are loaded with their split
		if hasattr(self, 'order_count'):
			return self.order_count > 0
		return self.orders.exists()

	@property
	def state(self):
		if self.is_completed:
			return self.COMPLETED
		if self.total_amount_p > 0 or self.has_orders():
			return self.ORDERING
		return self.CREATED

	def is_removable(self):
		"""A person can be dropped from a split only before they order or pay"""
		return not self.is_completed and self.total_amount_p == 0 and not self.has_orders()
