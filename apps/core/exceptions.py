# apps/core/exceptions.py
from rest_framework import status
from rest_framework.exceptions import APIException


class StoreOperationError(APIException):
    """Raised when the document store cannot be reached or refuses an operation"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = {'message': 'The document store is unavailable. Please retry.'}
    default_code = 'store_unavailable'


class TransactionConflictError(APIException):
    """Raised when a store transaction keeps conflicting after every retry"""
    status_code = status.HTTP_409_CONFLICT
    default_detail = {'message': 'The operation conflicted with a concurrent change. Please retry.'}
    default_code = 'transaction_conflict'


class DocumentNotFoundError(APIException):
    """Raised when a document that must exist is missing"""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = {'message': 'Record not found.'}
    default_code = 'document_not_found'


class IdentityProviderError(APIException):
    """Raised when the identity provider rejects a request"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = {'message': 'The identity provider rejected the request.'}
    default_code = 'identity_error'

    # Provider reason -> user facing message
    MESSAGES = {
        'EMAIL_EXISTS': 'An account with this email already exists.',
        'WEAK_PASSWORD': 'Password should be at least 6 characters.',
        'INVALID_CREDENTIALS': 'Invalid email or password.',
        'INVALID_TOKEN': 'Invalid or expired authentication token.',
        'USER_NOT_FOUND': 'No account exists for this user.',
    }

    def __init__(self, reason=None, detail=None):
        self.reason = reason
        if detail is None and reason in self.MESSAGES:
            detail = {'message': self.MESSAGES[reason]}
        super().__init__(detail=detail)


class StorageOperationError(APIException):
    """Raised when an object storage upload or delete fails"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = {'message': 'File storage is unavailable. Please retry.'}
    default_code = 'storage_unavailable'


class NotificationDeliveryError(APIException):
    """Raised when the mail relay refuses a notification"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = {'message': 'Failed to send email.'}
    default_code = 'notification_failed'


class DuplicateCategoryError(APIException):
    """Raised when a product category name is already taken"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = {'message': 'Category already exists.'}
    default_code = 'duplicate_category'


class FormStateError(APIException):
    """Raised when a form transition is not allowed from the current step"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = {'message': 'This action is not available at the current step.'}
    default_code = 'invalid_form_state'


def _first_error(errors):
    """Return the first message found in a DRF error structure"""
    if isinstance(errors, dict):
        for value in errors.values():
            return _first_error(value)
        return ''
    if isinstance(errors, list):
        return _first_error(errors[0]) if errors else ''
    return str(errors)


def custom_exception_handler(exc, context):
    """Custom exception handler to return all errors in {message: ""} format"""
    # rest_framework.views loads the authentication classes, which import this module
    from rest_framework.views import exception_handler

    response = exception_handler(exc, context)

    if response is not None:
        data = response.data
        # Custom exceptions already carry {message: ""}
        if isinstance(data, dict) and 'message' in data and len(data) == 1:
            response.data = {'message': _first_error(data['message'])}
        elif response.status_code == status.HTTP_400_BAD_REQUEST:
            # Field-level validation errors keep their field map
            if isinstance(data, dict):
                message = _first_error(data) or 'Invalid data.'
                response.data = {'message': message, 'errors': data}
            else:
                response.data = {'message': _first_error(data) or 'Invalid data.'}
        elif response.status_code == status.HTTP_401_UNAUTHORIZED:
            response.data = {'message': _first_error(data) or 'Authentication required.'}
        elif response.status_code == status.HTTP_403_FORBIDDEN:
            response.data = {'message': _first_error(data) or 'Access denied.'}
        elif response.status_code == status.HTTP_404_NOT_FOUND:
            response.data = {'message': 'Not found.'}
        else:
            response.data = {'message': _first_error(data)}

    return response
