from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from billing.serializers import BillSerializer
from billing.services import get_bill
from epos.exceptions import PreconditionError
from .receipts import build_receipt
from .serializers import PaymentSerializer, TakePaymentSerializer
from . import services

BILL_ID_PARAMETER = OpenApiParameter(
    name='bill_id',
    type=OpenApiTypes.INT,
    location=OpenApiParameter.PATH,
    description='Bill ID'
)


class TakePaymentView(APIView):
    """Settle a bill"""

    @extend_schema(
        summary="Take payment",
        description="Record a full payment, mark the bill paid and close the session.",
        request=TakePaymentSerializer,
        parameters=[BILL_ID_PARAMETER],
        responses={
            200: OpenApiTypes.OBJECT,
            400: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT
        },
        examples=[
            OpenApiExample(
                'Payment Request',
                summary='Cash payment',
                value={'payment_method': 'cash', 'amount_paid': '30.00'}
            ),
            OpenApiExample(
                'Payment Too Low',
                summary='Amount below the bill total',
                value={
                    'error': 'Payment amount is less than the bill total',
                    'code': 'validation_error',
                    'total': '29.62'
                },
                response_only=True,
                status_codes=['400']
            )
        ]
    )
    def post(self, request, bill_id):
        serializer = TakePaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        payment, bill, receipt = services.pay(
            bill_id, request.user,
            serializer.validated_data['payment_method'],
            serializer.validated_data['amount_paid'],
        )
        return Response({
            'payment': PaymentSerializer(payment).data,
            'bill': BillSerializer(bill).data,
            'receipt': receipt,
        }, status=status.HTTP_200_OK)


class ReceiptView(APIView):
    @extend_schema(
        summary="Reprint a receipt",
        parameters=[BILL_ID_PARAMETER],
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request, bill_id):
        bill = get_bill(bill_id)
        if not bill.is_paid:
            raise PreconditionError("Receipts are only available for paid bills")
        return Response(build_receipt(bill))
