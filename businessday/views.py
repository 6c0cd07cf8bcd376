from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from . import services
from .serializers import BusinessDaySerializer, OpenBusinessDaySerializer, CloseBusinessDaySerializer


class CurrentBusinessDayView(APIView):
    @extend_schema(
        summary="Get the open business day",
        description="Returns the open business day, or null when the day is closed.",
        responses={200: BusinessDaySerializer},
    )
    def get(self, request):
        business_day = services.current_business_day()
        return Response({
            'business_day': BusinessDaySerializer(business_day).data if business_day else None
        })


class OpenBusinessDayView(APIView):
    @extend_schema(
        summary="Open the business day",
        description="Open a new accounting period. Only one business day can be open at a time.",
        request=OpenBusinessDaySerializer,
        responses={201: BusinessDaySerializer, 409: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Open Day Example',
                summary='Open the day with a 500.00 float',
                value={'opening_cash': '500.00'}
            )
        ]
    )
    def post(self, request):
        serializer = OpenBusinessDaySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        business_day = services.open_business_day(serializer.validated_data['opening_cash'], request.user)
        return Response(BusinessDaySerializer(business_day).data, status=status.HTTP_201_CREATED)


class CloseBusinessDayView(APIView):
    @extend_schema(
        summary="Close the business day",
        description="Close the open business day and record the cash count. Closing is final.",
        request=CloseBusinessDaySerializer,
        parameters=[
            OpenApiParameter(
                name='day_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Business day ID'
            )
        ],
        responses={200: BusinessDaySerializer, 404: OpenApiTypes.OBJECT},
    )
    def post(self, request, day_id):
        serializer = CloseBusinessDaySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        business_day = services.close_business_day(day_id, serializer.validated_data['closing_cash'], request.user)
        return Response(BusinessDaySerializer(business_day).data)
