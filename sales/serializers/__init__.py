from .sale import RecordSaleInputSerializer, SaleSerializer

__all__ = [
    "SaleSerializer",
    "RecordSaleInputSerializer",
]
