from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from drf_spectacular.utils import extend_schema
from drf_spectacular.types import OpenApiTypes

from . import reader
from .serializers import CategorySerializer, MenuItemSerializer, ModifierGroupSerializer


class MenuView(APIView):
    """Public menu used by the QR ordering page"""
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Get menu",
        description="Active categories and available menu items with their modifier groups.",
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request):
        items = []
        for item in reader.list_menu_items():
            data = MenuItemSerializer(item).data
            data['modifier_groups'] = ModifierGroupSerializer(
                reader.list_modifier_groups_for_item(item.id), many=True
            ).data
            items.append(data)

        return Response({
            'categories': CategorySerializer(reader.list_categories(), many=True).data,
            'items': items,
        })
