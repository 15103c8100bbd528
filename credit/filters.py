# credit/filters.py

import django_filters

from credit.models import CreditSale
from credit.services.credit_status import STATUS_CHOICES


class CreditSaleFilter(django_filters.FilterSet):
    """
    Narrowing filters for the credit sale list.

    Filters compose with AND; an absent filter matches everything.
    """

    status = django_filters.ChoiceFilter(choices=STATUS_CHOICES)
    customer_phone = django_filters.CharFilter(field_name="customer_phone")
    business_id = django_filters.UUIDFilter(field_name="business_id")

    class Meta:
        model = CreditSale
        fields = ["status", "customer_phone", "business_id"]
