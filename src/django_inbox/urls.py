"""URL configuration for django-inbox.

Example usage in project urls.py:

    from django.urls import path, include

    urlpatterns = [
        path("api/inbox/", include("django_inbox.urls")),
    ]
"""

from django.urls import path

from . import views

app_name = "django_inbox"

urlpatterns = [
    path("messages/", views.CustomerMessagesView.as_view(), name="messages"),
    path("staff/messages/", views.StaffMessagesView.as_view(), name="staff-messages"),
    path("conversations/", views.ConversationListView.as_view(), name="conversations"),
    path("typing/start/", views.TypingView.as_view(started=True), name="typing-start"),
    path("typing/stop/", views.TypingView.as_view(started=False), name="typing-stop"),
    path("notifications/", views.NotificationListView.as_view(), name="notifications"),
    path(
        "notifications/unread-count/",
        views.UnreadCountView.as_view(),
        name="notifications-unread-count",
    ),
    path(
        "notifications/<int:notification_id>/read/",
        views.NotificationReadView.as_view(),
        name="notification-read",
    ),
    path(
        "notifications/read-all/",
        views.NotificationReadAllView.as_view(),
        name="notifications-read-all",
    ),
    path(
        "notifications/read-from/<int:sender_id>/",
        views.NotificationReadFromSenderView.as_view(),
        name="notifications-read-from",
    ),
    path("broadcasting/auth/", views.ChannelAuthView.as_view(), name="broadcasting-auth"),
]
