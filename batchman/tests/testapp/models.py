"""
Minimal product catalog used by the test suite.

Implements ConvertibleProduct: a main unit plus one conversion factor
per tracked unit (the main unit included, with factor 1).
"""

from django.db import models


class Product(models.Model):
    name = models.CharField(max_length=100)
    main_unit = models.CharField(max_length=32, blank=True)

    def get_unit_conversions(self):
        return [(c.unit, c.factor) for c in self.conversions.all()]

    def __str__(self) -> str:
        return self.name


class UnitConversion(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='conversions')
    unit = models.CharField(max_length=32)
    factor = models.DecimalField(max_digits=18, decimal_places=6)

    def __str__(self) -> str:
        return f"{self.product} {self.unit}={self.factor}"


class Order(models.Model):
    """Stand-in for an external document referenced by moves."""

    code = models.CharField(max_length=20)
