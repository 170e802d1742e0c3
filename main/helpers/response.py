from rest_framework import status
from rest_framework.response import Response


class APIResponse:
    """Uniform JSON envelope for the sales API."""

    @staticmethod
    def success(data=None, message='Success', status_code=status.HTTP_200_OK):
        body = {'success': True, 'message': message}
        if data is not None:
            body['data'] = data
        return Response(body, status=status_code)

    @staticmethod
    def created(data=None, message='Created'):
        return APIResponse.success(data=data, message=message, status_code=status.HTTP_201_CREATED)

    @staticmethod
    def error(message='Error', errors=None, status_code=status.HTTP_400_BAD_REQUEST):
        body = {'success': False, 'message': message}
        if errors:
            body['errors'] = errors
        return Response(body, status=status_code)

    @staticmethod
    def validation_error(errors=None, message='Validation error'):
        return APIResponse.error(message=message, errors=errors)

    @staticmethod
    def not_found(message='Not found'):
        return APIResponse.error(message=message, status_code=status.HTTP_404_NOT_FOUND)
