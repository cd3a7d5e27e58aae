from django.urls import path
from .views import FormSessionViewSet

form_start = FormSessionViewSet.as_view({'post': 'start'})
form_state = FormSessionViewSet.as_view({'get': 'retrieve'})
form_next = FormSessionViewSet.as_view({'post': 'next'})
form_back = FormSessionViewSet.as_view({'post': 'back'})
form_submit = FormSessionViewSet.as_view({'post': 'submit'})
form_cancel = FormSessionViewSet.as_view({'post': 'cancel'})

urlpatterns = [
    path('forms/<str:form>/start/', form_start, name='form-start'),
    path('forms/<str:form>/<str:session>/', form_state, name='form-state'),
    path('forms/<str:form>/<str:session>/next/', form_next, name='form-next'),
    path('forms/<str:form>/<str:session>/back/', form_back, name='form-back'),
    path('forms/<str:form>/<str:session>/submit/', form_submit, name='form-submit'),
    path('forms/<str:form>/<str:session>/cancel/', form_cancel, name='form-cancel'),
]
