"""Products API views.

Public read access to published products; administrators manage the catalog.
Filtering/search/ordering/pagination are provided for list endpoints.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from accounts.permissions import IsAdminOrReadOnly, is_admin

from .models import Product
from .serializers import ProductSerializer


class StandardResultsSetPagination(PageNumberPagination):
    """Default pagination used by list endpoints."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class ProductViewSet(viewsets.ModelViewSet):
    """Products CRUD.

    - Public users: can read published products only.
    - Admins: see everything and can create/update/delete.
    """

    serializer_class = ProductSerializer
    pagination_class = StandardResultsSetPagination
    permission_classes = [IsAdminOrReadOnly]

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['category']
    search_fields = ['name', 'description']
    ordering_fields = ['name', 'price_cents']

    def get_queryset(self):
        if is_admin(self.request.user):
            return Product.objects.all()
        return Product.objects.filter(is_published=True)

    @action(detail=False, methods=['get'], url_path='categories')
    def categories(self, request):
        """Distinct categories of the visible products, for filter dropdowns."""
        values = (
            self.get_queryset()
            .order_by('category')
            .values_list('category', flat=True)
            .distinct()
        )
        return Response(list(values))
