from decimal import Decimal

from django import forms

from .services.config import REGION_CURRENCIES, REGIONS

REGION_CHOICES = [(region, f"{region} ({REGION_CURRENCIES[region]})") for region in REGIONS]


class BudgetForm(forms.Form):
    budget = forms.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0.01"),
        label="Budget",
        widget=forms.NumberInput(attrs={"placeholder": "Enter your budget"})
    )
    region = forms.ChoiceField(
        choices=REGION_CHOICES,
        label="Region"
    )

    def clean_region(self):
        return self.cleaned_data["region"].strip().upper()
