# sales/views/sale.py

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from backend.envelope import error_response, first_error_message, success_response
from permissions.roles import CAP_POS_SELL, HasCapability
from sales.serializers import RecordSaleInputSerializer, SaleSerializer
from sales.services.sale_service import SaleRecordingError, record_sale


class RecordSaleView(APIView):
    """
    POS SALE ENDPOINT (AUTHORITATIVE)

    GUARANTEES:
    - Atomic sale recording
    - Immutable Sale
    - Credit sales open their CreditSale in the same transaction
    """

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_POS_SELL

    @extend_schema(
        tags=["Sales"],
        request=RecordSaleInputSerializer,
        responses={201: SaleSerializer},
        description="Record an immutable sale; payment_method=credit opens a credit sale",
    )
    def post(self, request):
        serializer = RecordSaleInputSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                first_error_message(serializer.errors), details=serializer.errors
            )

        data = serializer.validated_data

        try:
            sale, credit = record_sale(
                user=request.user,
                total_amount=data["total_amount"],
                payment_method=data["payment_method"],
                customer_name=data["customer_name"],
                customer_phone=data["customer_phone"],
                due_date=data["due_date"],
                notes=data["notes"],
            )
        except SaleRecordingError as exc:
            return error_response(str(exc))

        message = "Credit sale recorded" if credit else "Sale recorded"
        return success_response(
            SaleSerializer(sale).data,
            message=message,
            http_status=status.HTTP_201_CREATED,
        )
