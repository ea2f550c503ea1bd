from django.conf import settings
from rest_framework.pagination import BasePagination
from rest_framework.response import Response


def _non_negative_int(raw, default):
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if value < 0:
        return default
    return value


class LimitPageNoPagination(BasePagination):
    """
    Offset pagination driven by `limit` and zero-indexed `pageNo` query params.
    Garbage values fall back to the defaults instead of failing the request.
    """
    limit_query_param = 'limit'
    page_query_param = 'pageNo'

    def get_limit(self, request):
        default = getattr(settings, 'DEFAULT_PAGE_LIMIT', 20)
        limit = _non_negative_int(request.query_params.get(self.limit_query_param), default)
        return min(limit, getattr(settings, 'MAX_PAGE_LIMIT', 100))

    def get_page_no(self, request):
        return _non_negative_int(request.query_params.get(self.page_query_param), 0)

    def paginate_queryset(self, queryset, request, view=None):
        self.limit = self.get_limit(request)
        self.page_no = self.get_page_no(request)
        offset = self.page_no * self.limit
        return list(queryset[offset:offset + self.limit])

    def get_paginated_response(self, data, key='results'):
        return Response({
            key: data,
            'limit': self.limit,
            'pageNo': self.page_no,
        })
