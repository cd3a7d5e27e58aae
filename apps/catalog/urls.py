from django.urls import path
from .views import CatalogView, CategoryDetailView, CategoryListView, ItemDetailView, ItemListView

urlpatterns = [
    path('product-master/', CatalogView.as_view(), name='product-master'),
    path('product-master/categories/', CategoryListView.as_view(), name='product-categories'),
    path('product-master/categories/<str:category>/', CategoryDetailView.as_view(), name='product-category'),
    path('product-master/categories/<str:category>/items/', ItemListView.as_view(), name='product-items'),
    path('product-master/categories/<str:category>/items/<str:item_id>/', ItemDetailView.as_view(),
         name='product-item'),
]
