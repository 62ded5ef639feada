from django.urls import path
from . import views

app_name = 'conversations'

urlpatterns = [
    path('', views.ConversationListView.as_view(), name='conversation-list'),
    path('<uuid:conversation_id>/messages/', views.ConversationMessagesView.as_view(), name='conversation-messages'),
    path('<uuid:conversation_id>/read/', views.ConversationReadView.as_view(), name='conversation-read'),
]
