from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from . import services
from .serializers import BillSerializer, UpsertBillSerializer


class UpsertBillView(APIView):
    @extend_schema(
        summary="Create or update the bill",
        description=(
            "Compute the session's bill from its printed orders. Percentage discounts are capped "
            "by role (cashier 15%, owner 30%). Paid bills cannot change."
        ),
        parameters=[
            OpenApiParameter(
                name='session_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Session ID'
            )
        ],
        request=UpsertBillSerializer,
        responses={200: BillSerializer, 403: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Percentage Discount',
                summary='10% off',
                value={'discount_percentage': '10.00'}
            ),
            OpenApiExample(
                'Discount Too High',
                summary='Cashier above the ceiling',
                value={'error': 'Discount limit for cashier is 15%', 'code': 'not_authorized', 'limit': 15.0},
                response_only=True,
                status_codes=['403']
            )
        ]
    )
    def post(self, request, session_id):
        serializer = UpsertBillSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        bill = services.upsert_bill(session_id, request.user, **serializer.validated_data)
        return Response(BillSerializer(services.get_bill(bill.id)).data)


class GetBillView(APIView):
    @extend_schema(
        summary="Get bill details",
        parameters=[
            OpenApiParameter(
                name='bill_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Bill ID'
            )
        ],
        responses={200: BillSerializer},
    )
    def get(self, request, bill_id):
        return Response(BillSerializer(services.get_bill(bill_id)).data)
