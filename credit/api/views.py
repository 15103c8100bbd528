# credit/api/views.py

"""
CREDIT API (STAFF)

Every response uses the project envelope (backend.envelope):
    {"success": bool, "data": ..., "error": str, "message": str}

Business scoping:
- list / summary / customer history are limited to request.user.business_id
  when the user belongs to a business
- detail and payment address one credit sale by id
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from backend.envelope import error_response, first_error_message, success_response
from credit.api.serializers import (
    CreditListQuerySerializer,
    CreditSaleSerializer,
    CreditSummarySerializer,
    RecordPaymentInputSerializer,
)
from credit.services.credit_status import STATUS_PAID
from credit.services.exceptions import (
    CreditSaleNotFoundError,
    CreditValidationError,
    TransientStoreError,
)
from credit.services.ledger_service import get_ledger_service
from permissions.roles import CAP_CREDIT_COLLECT, CAP_CREDIT_VIEW_ALL, HasCapability


class CreditAPIView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_CREDIT_COLLECT

    def get_ledger(self):
        return get_ledger_service()

    def get_business_id(self):
        return getattr(self.request.user, "business_id", None)


class CreditSaleListView(CreditAPIView):
    required_capability = CAP_CREDIT_VIEW_ALL

    @extend_schema(
        tags=["Credit"],
        parameters=[
            OpenApiParameter("status", str, description="PENDING, PARTIAL or PAID"),
            OpenApiParameter("customerId", str, description="Customer phone number"),
        ],
        responses={200: CreditSaleSerializer(many=True)},
        description="List credit sales for the caller's business, newest first",
    )
    def get(self, request):
        query = CreditListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return error_response(first_error_message(query.errors), details=query.errors)

        try:
            credits = self.get_ledger().list_credit_sales(
                status=query.validated_data["status"],
                customer_phone=query.validated_data["customerId"],
                business_id=self.get_business_id(),
            )
        except CreditValidationError as exc:
            return error_response(str(exc))

        return success_response(
            {
                "content": CreditSaleSerializer(credits, many=True).data,
                "total": len(credits),
            }
        )


class CreditSummaryView(CreditAPIView):
    required_capability = CAP_CREDIT_VIEW_ALL

    @extend_schema(
        tags=["Credit"],
        responses={200: CreditSummarySerializer},
        description="Outstanding balance and per-status counts for the caller's business",
    )
    def get(self, request):
        summary = self.get_ledger().summarize(business_id=self.get_business_id())
        return success_response(CreditSummarySerializer(summary).data)


class CustomerCreditHistoryView(CreditAPIView):
    @extend_schema(
        tags=["Credit"],
        responses={200: CreditSaleSerializer(many=True)},
        description="All credit sales recorded against one customer phone number",
    )
    def get(self, request, phone):
        try:
            credits = self.get_ledger().list_credit_sales(
                customer_phone=phone,
                business_id=self.get_business_id(),
            )
        except CreditValidationError as exc:
            return error_response(str(exc))

        return success_response(CreditSaleSerializer(credits, many=True).data)


class CreditSaleDetailView(CreditAPIView):
    @extend_schema(
        tags=["Credit"],
        responses={200: CreditSaleSerializer},
        description="One credit sale with its payments, newest first",
    )
    def get(self, request, credit_sale_id):
        try:
            credit = self.get_ledger().get_credit_sale(credit_sale_id)
        except CreditSaleNotFoundError:
            return error_response(
                "Credit sale not found", http_status=status.HTTP_404_NOT_FOUND
            )

        return success_response(CreditSaleSerializer(credit).data)


class RecordCreditPaymentView(CreditAPIView):
    """
    CREDIT PAYMENT ENDPOINT (AUTHORITATIVE)

    GUARANTEES:
    - Atomic: payment row + credit sale update commit together or not at all
    - Overpayment rejected, never clamped
    - Operator recorded from the authenticated user
    """

    @extend_schema(
        tags=["Credit"],
        request=RecordPaymentInputSerializer,
        responses={200: CreditSaleSerializer},
        description="Record a payment against a credit sale",
    )
    def post(self, request):
        serializer = RecordPaymentInputSerializer(data=request.data)
        if not serializer.is_valid():
            return error_response(
                first_error_message(serializer.errors), details=serializer.errors
            )

        data = serializer.validated_data

        try:
            credit = self.get_ledger().record_payment(
                credit_sale_id=data["credit_sale_id"],
                amount=data["amount"],
                payment_method=data["payment_method"],
                operator_id=request.user.pk,
                notes=data["notes"] or "",
            )

        except CreditSaleNotFoundError:
            return error_response(
                "Credit sale not found", http_status=status.HTTP_404_NOT_FOUND
            )

        except CreditValidationError as exc:
            return error_response(str(exc))

        except TransientStoreError:
            return error_response(
                "Failed to record payment. Please try again.",
                http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        message = (
            "Credit fully paid!" if credit.status == STATUS_PAID else "Payment recorded successfully"
        )
        return success_response(CreditSaleSerializer(credit).data, message=message)
