# ledger_core/common/api/pagination.py
from __future__ import annotations

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class DefaultPagination(PageNumberPagination):
    """
    Page size comes from REST_FRAMEWORK["PAGE_SIZE"]; clients may ask for up to 200.
    """
    page_size_query_param = "page_size"
    max_page_size = 200

    def get_paginated_response(self, data):
        return Response(
            {
                "count": self.page.paginator.count,
                "page": self.page.number,
                "total_pages": self.page.paginator.num_pages,
                "next": self.get_next_link(),
                "previous": self.get_previous_link(),
                "results": data,
            }
        )

    def get_paginated_response_schema(self, schema):
        base = super().get_paginated_response_schema(schema)
        base["properties"]["page"] = {"type": "integer", "example": 1}
        base["properties"]["total_pages"] = {"type": "integer", "example": 3}
        return base


def paginate(request, queryset, serializer_class) -> Response:
    """
    Paginated list response for the function-style list actions:
      { count, page, total_pages, next, previous, results }
    """
    paginator = DefaultPagination()
    page = paginator.paginate_queryset(queryset, request)
    context = {"request": request}
    if page is None:
        return Response(serializer_class(queryset, many=True, context=context).data)
    return paginator.get_paginated_response(serializer_class(page, many=True, context=context).data)
