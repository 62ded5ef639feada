from django.urls import path
from .views import MessageDeleteForEveryoneView, MessageDeleteView

app_name = 'dmessages'

urlpatterns = [
    path('<int:message_id>/', MessageDeleteView.as_view(), name='message-delete'),
    path('<int:message_id>/for-everyone/', MessageDeleteForEveryoneView.as_view(), name='message-delete-for-everyone'),
]
