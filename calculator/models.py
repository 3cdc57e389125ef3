from django.db import models


class CurrencyRate(models.Model):
    """Value of one unit of ``currency`` in USD (refreshed by update_rates)."""

    currency = models.CharField(max_length=3, unique=True)
    rate_to_usd = models.DecimalField(max_digits=12, decimal_places=6)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.currency}: {self.rate_to_usd}"
