from django.conf import settings
from rest_framework.exceptions import ParseError

from main.helpers.response import APIResponse


def parse_json_body(request):
    """Return (data, None) or (None, error_response) for a DRF request."""
    try:
        data = request.data
    except ParseError:
        return None, APIResponse.validation_error(message='Invalid JSON body')
    if not isinstance(data, dict):
        return None, APIResponse.validation_error(message='JSON body must be an object')
    return data, None


def get_tenant_id(request):
    return request.META.get(settings.TENANT_HEADER) or settings.STOCK_DEFAULT_TENANT
