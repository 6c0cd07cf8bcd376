from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from epos.permissions import IsOwner
from .services import end_of_day_report


class EndOfDayReportView(APIView):
    permission_classes = [IsOwner]

    @extend_schema(
        summary="End of day report",
        description="Orders, sales, taxes, payments by method and sessions by type for a business day.",
        parameters=[
            OpenApiParameter(
                name='day_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Business day ID'
            )
        ],
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request, day_id):
        return Response(end_of_day_report(day_id))
