from django.conf import settings
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import AllowAny
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from epos.exceptions import PreconditionError
from . import intake, kitchen, services
from .models import Order
from .serializers import (
    OrderSerializer, QrOrderSubmissionSerializer, ManualOrderSerializer, RejectOrderSerializer
)

ORDER_ID_PARAMETER = OpenApiParameter(
    name='order_id',
    type=OpenApiTypes.INT,
    location=OpenApiParameter.PATH,
    description='Order ID'
)


def get_client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('HTTP_X_REAL_IP') or request.META.get('REMOTE_ADDR') or 'unknown'


class QrOrderView(APIView):
    """Anonymous order submission from a table's QR page"""
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Submit a QR order",
        description=(
            "Submit an order from a customer's device. The order waits for staff approval. "
            "Duplicate clientRequestId values are rejected with 409 and each IP/table pair "
            "may submit 3 times per minute (429)."
        ),
        request=QrOrderSubmissionSerializer,
        responses={
            200: OpenApiTypes.OBJECT,
            400: OpenApiTypes.OBJECT,
            404: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
            429: OpenApiTypes.OBJECT,
        },
        examples=[
            OpenApiExample(
                'QR Order Request',
                summary='Two coffees for table 5',
                value={
                    'tableNumber': '5',
                    'items': [{'menu_item_id': 1, 'quantity': 2, 'notes': 'no sugar'}],
                    'clientRequestId': '6f1c2a9e-2d7b-4a57-9a51-1f6bb0f1f3b2'
                }
            ),
            OpenApiExample(
                'QR Order Accepted',
                summary='Order stored as pending',
                value={
                    'success': True,
                    'message': 'Order submitted successfully. Waiting for staff approval.',
                    'orderNumber': 'QR-LZ3K9Q1A-7H2M0XQ'
                },
                response_only=True
            )
        ]
    )
    def post(self, request):
        serializer = QrOrderSubmissionSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        order = intake.submit_qr_order(
            table_number=data['tableNumber'],
            items=data['items'],
            client_request_id=data.get('clientRequestId') or None,
            source_ip=get_client_ip(request),
        )
        return Response({
            'success': True,
            'message': 'Order submitted successfully. Waiting for staff approval.',
            'orderNumber': order.order_number
        }, status=status.HTTP_200_OK)


class CreateManualOrderView(APIView):
    @extend_schema(
        summary="Add a staff order to a session",
        description="Create an accepted order from the staff terminal. Prices come from the current menu.",
        parameters=[
            OpenApiParameter(
                name='session_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Session ID'
            )
        ],
        request=ManualOrderSerializer,
        responses={201: OrderSerializer},
        examples=[
            OpenApiExample(
                'Manual Order Example',
                summary='Two plates for the table',
                value={'items': [{'menu_item_id': 4, 'quantity': 2, 'modifiers': [3]}]}
            )
        ]
    )
    def post(self, request, session_id):
        serializer = ManualOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        order = intake.create_manual_order(
            session_id, request.user,
            serializer.validated_data['items'],
            notes=serializer.validated_data.get('notes'),
        )
        order = services.get_order(order.id)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class PendingOrdersView(APIView):
    @extend_schema(
        summary="Pending QR orders",
        description="QR orders waiting for staff approval in the open business day. Clients poll this view.",
        responses={200: OrderSerializer(many=True)},
    )
    def get(self, request):
        orders = services.list_pending_qr_orders()
        return Response({
            'orders': OrderSerializer(orders, many=True).data,
            'poll_interval': settings.POS_POLL_INTERVAL_SECONDS,
        })


class GetOrderView(APIView):
    @extend_schema(
        summary="Get order details",
        parameters=[ORDER_ID_PARAMETER],
        responses={200: OrderSerializer},
    )
    def get(self, request, order_id):
        return Response(OrderSerializer(services.get_order(order_id)).data)


class AcceptOrderView(APIView):
    @extend_schema(
        summary="Accept a pending order",
        parameters=[ORDER_ID_PARAMETER],
        request=None,
        responses={200: OrderSerializer, 409: OpenApiTypes.OBJECT},
    )
    def post(self, request, order_id):
        order = services.accept_order(order_id, request.user)
        return Response(OrderSerializer(services.get_order(order.id)).data)


class RejectOrderView(APIView):
    @extend_schema(
        summary="Reject a pending order",
        parameters=[ORDER_ID_PARAMETER],
        request=RejectOrderSerializer,
        responses={200: OrderSerializer, 409: OpenApiTypes.OBJECT},
    )
    def post(self, request, order_id):
        serializer = RejectOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        order = services.reject_order(order_id, request.user, serializer.validated_data.get('reason'))
        return Response(OrderSerializer(services.get_order(order.id)).data)


class PrintOrderView(APIView):
    @extend_schema(
        summary="Send an order to the kitchen",
        description="Marks an accepted order as printed and returns the kitchen ticket. "
                    "Printed orders are included in the bill.",
        parameters=[ORDER_ID_PARAMETER],
        request=None,
        responses={200: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
    )
    def post(self, request, order_id):
        order, ticket = kitchen.print_order(order_id, request.user)
        return Response({
            'order': OrderSerializer(order).data,
            'kitchen_ticket': ticket,
        })


class KitchenTicketView(APIView):
    @extend_schema(
        summary="Reprint a kitchen ticket",
        parameters=[ORDER_ID_PARAMETER],
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request, order_id):
        order = services.get_order(order_id)
        if order.status not in Order.BILLABLE_STATUSES:
            raise PreconditionError("Only printed orders have a kitchen ticket")
        return Response(kitchen.build_kitchen_ticket(order))
