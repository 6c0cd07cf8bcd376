from django.db import models


class Category(models.Model):
	name = models.CharField(max_length=100)
	sort_order = models.PositiveIntegerField(default=0)
	is_active = models.BooleanField(default=True)
	deleted_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ['sort_order', 'name']
		verbose_name_plural = 'categories'

	def __str__(self):
		return self.name


class MenuItem(models.Model):
	category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='items', null=True, blank=True)
	name = models.CharField(max_length=100)
	description = models.TextField(blank=True, default='')
	price = models.DecimalField(max_digits=10, decimal_places=2)
	is_active = models.BooleanField(default=True)
	is_available = models.BooleanField(default=True)
	deleted_at = models.DateTimeField(null=True, blank=True)

	class Meta:
		ordering = ['name']

	def __str__(self):
		return self.name


class ModifierGroup(models.Model):
	name = models.CharField(max_length=100)
	min_selections = models.PositiveIntegerField(default=0)
	max_selections = models.PositiveIntegerField(default=1)
	is_required = models.BooleanField(default=False)
	menu_items = models.ManyToManyField(MenuItem, related_name='modifier_groups', blank=True)

	def __str__(self):
		return self.name


class Modifier(models.Model):
	group = models.ForeignKey(ModifierGroup, on_delete=models.CASCADE, related_name='modifiers')
	name = models.CharField(max_length=100)
	price_adjustment = models.DecimalField(max_digits=10, decimal_places=2, default=0)
	is_active = models.BooleanField(default=True)

	def __str__(self):
		return f"{self.group.name}: {self.name}"
