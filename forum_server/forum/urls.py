from django.urls import path

from forum import views
from realtime.views import chat_history

urlpatterns = [
    path("posts", views.posts),
    path("posts/<int:post_id>", views.post_detail),
    path("chat/history", chat_history),
]
