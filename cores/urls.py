from django.urls import path
from .views import SchoolSettingView, AuditLogListView

urlpatterns = [
    path('settings/', SchoolSettingView.as_view(), name='school-settings'),
    path('audit-logs/', AuditLogListView.as_view(), name='audit-logs'),
]
