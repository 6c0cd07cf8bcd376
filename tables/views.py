from django.conf import settings
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from . import services
from .serializers import (
    TableBoardSerializer, TableSerializer, SessionSerializer,
    OpenDineInSerializer, OpenTakeawaySerializer, OpenDeliverySerializer
)

TABLE_ID_PARAMETER = OpenApiParameter(
    name='table_id',
    type=OpenApiTypes.INT,
    location=OpenApiParameter.PATH,
    description='Table ID'
)


class TableBoardView(APIView):
    @extend_schema(
        summary="Table board",
        description="All active tables with occupancy derived from active sessions. Clients poll this view.",
        responses={200: TableBoardSerializer(many=True)},
    )
    def get(self, request):
        tables = services.table_board()
        return Response({
            'tables': TableBoardSerializer(tables, many=True).data,
            'poll_interval': settings.POS_POLL_INTERVAL_SECONDS,
        })


class ToggleQRView(APIView):
    @extend_schema(
        summary="Toggle QR ordering",
        description="Enable or disable QR self-service ordering for a table.",
        parameters=[TABLE_ID_PARAMETER],
        request=None,
        responses={200: TableSerializer},
    )
    def post(self, request, table_id):
        table = services.toggle_qr(table_id)
        return Response(TableSerializer(table).data)


class OpenDineInView(APIView):
    @extend_schema(
        summary="Open a table",
        description="Start a dine-in session on a free table.",
        parameters=[TABLE_ID_PARAMETER],
        request=OpenDineInSerializer,
        responses={201: SessionSerializer, 409: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Open Table Example',
                summary='Seat 2 guests',
                value={'guest_count': 2}
            )
        ]
    )
    def post(self, request, table_id):
        serializer = OpenDineInSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        session = services.open_dine_in(table_id, serializer.validated_data['guest_count'], request.user)
        return Response(SessionSerializer(session).data, status=status.HTTP_201_CREATED)


class OpenTakeawayView(APIView):
    @extend_schema(
        summary="Start a takeaway order",
        request=OpenTakeawaySerializer,
        responses={201: SessionSerializer},
    )
    def post(self, request):
        serializer = OpenTakeawaySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        session = services.open_takeaway(request.user, **serializer.validated_data)
        return Response(SessionSerializer(session).data, status=status.HTTP_201_CREATED)


class OpenDeliveryView(APIView):
    @extend_schema(
        summary="Start a delivery order",
        description="Delivery sessions need the customer's name, phone and address.",
        request=OpenDeliverySerializer,
        responses={201: SessionSerializer},
        examples=[
            OpenApiExample(
                'Delivery Example',
                summary='Delivery with the default fee',
                value={
                    'customer_name': 'Mona',
                    'customer_phone': '01000000000',
                    'customer_address': '12 Nile St'
                }
            )
        ]
    )
    def post(self, request):
        serializer = OpenDeliverySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        session = services.open_delivery(request.user, **serializer.validated_data)
        return Response(SessionSerializer(session).data, status=status.HTTP_201_CREATED)


class GetSessionView(APIView):
    @extend_schema(
        summary="Get session details",
        parameters=[
            OpenApiParameter(
                name='session_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Session ID'
            )
        ],
        responses={200: SessionSerializer},
    )
    def get(self, request, session_id):
        session = services.get_session(session_id)
        return Response(SessionSerializer(session).data)
