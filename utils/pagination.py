# ==================== UTILS/PAGINATION.PY ====================
from rest_framework.pagination import PageNumberPagination


class StandardResultsPagination(PageNumberPagination):
    """?page=N&limit=M paging used across list endpoints"""
    page_size = 20
    page_size_query_param = 'limit'
    max_page_size = 100
