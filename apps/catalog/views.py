# apps/catalog/views.py
"""
Product Master: categories and their items.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.catalog.repositories import ProductCatalogRepository
from apps.catalog.serializers import CatalogNameSerializer
from apps.core.exceptions import DocumentNotFoundError
from apps.core.permissions import ScreenPermission
from apps.users import roles


class ProductMasterView(APIView):
    """Base view: Product Master screen, readable from the entry screens that pick products"""
    permission_classes = [ScreenPermission]
    serializer_class = CatalogNameSerializer
    screen = roles.PRODUCT_MASTER
    read_screens = (
        roles.POSTAL_ENTRY,
        roles.FD_ENTRY,
        roles.INSURANCE_ENTRY,
        roles.MEDICLAIM_ENTRY,
    )

    def get_repository(self):
        return ProductCatalogRepository()

    def validated_name(self, request):
        serializer = CatalogNameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data['name']


class CatalogView(ProductMasterView):
    """GET /api/product-master/ - The whole catalog: {category: [{id, name}]}"""

    def get(self, request):
        return Response(self.get_repository().get_catalog())


class CategoryListView(ProductMasterView):
    """POST /api/product-master/categories/ - Add a category"""

    def post(self, request):
        name = self.validated_name(request)
        repository = self.get_repository()
        repository.add_category(name)
        return Response(repository.get_catalog(), status=status.HTTP_201_CREATED)


class CategoryDetailView(ProductMasterView):
    """
    GET    /api/product-master/categories/{category}/ - Items of the category
    DELETE /api/product-master/categories/{category}/ - Delete the category and its items
    """

    def get(self, request, category):
        catalog = self.get_repository().get_catalog()
        if category not in catalog:
            raise DocumentNotFoundError()
        return Response(catalog[category])

    def delete(self, request, category):
        self.get_repository().delete_category(category)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ItemListView(ProductMasterView):
    """POST /api/product-master/categories/{category}/items/ - Add an item (random UUID id)"""

    def post(self, request, category):
        item = self.get_repository().add_item(category, self.validated_name(request))
        return Response(item, status=status.HTTP_201_CREATED)


class ItemDetailView(ProductMasterView):
    """
    PATCH  /api/product-master/categories/{category}/items/{id}/ - Rename
    DELETE /api/product-master/categories/{category}/items/{id}/ - Delete
    """

    def patch(self, request, category, item_id):
        item = self.get_repository().edit_item(category, item_id, self.validated_name(request))
        return Response(item)

    def delete(self, request, category, item_id):
        self.get_repository().delete_item(category, item_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
