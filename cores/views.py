import logging

from rest_framework import generics, permissions
from rest_framework.permissions import IsAdminUser

from .models import AuditLog, SchoolSetting
from .serializers import AuditLogSerializer, SchoolSettingSerializer

logger = logging.getLogger(__name__)


class SchoolSettingView(generics.RetrieveUpdateAPIView):
    """
    School-wide configuration (pass mark, default exam length, branding).

    Every signed-in user can read it because the exam client needs the pass
    mark. Changes are restricted to admins and are always audited.
    """
    serializer_class = SchoolSettingSerializer
    http_method_names = ['get', 'put', 'patch', 'head', 'options']

    def get_permissions(self):
        if self.request.method in permissions.SAFE_METHODS:
            return [permissions.IsAuthenticated()]
        return [IsAdminUser()]

    def get_object(self):
        return SchoolSetting.load()

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)

    def perform_update(self, serializer):
        changed = sorted(serializer.validated_data)
        serializer.save()
        AuditLog.objects.create(
            actor=self.request.user,
            action='SETTINGS',
            target_model='SchoolSetting',
            target_object_id='1',
            details=f"Updated: {', '.join(changed)}" if changed else "Saved without changes",
            ip_address=self.request.META.get('REMOTE_ADDR'),
        )
        logger.info("School settings updated by user %s (%s)", self.request.user.pk, ', '.join(changed))


class AuditLogListView(generics.ListAPIView):
    """Admin trail, newest first. Filter with ?action=, ?target_model= or ?actor=."""
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = AuditLog.objects.select_related('actor').order_by('-timestamp')
        params = self.request.query_params
        if params.get('action'):
            queryset = queryset.filter(action=params['action'].upper())
        if params.get('target_model'):
            queryset = queryset.filter(target_model=params['target_model'])
        if params.get('actor'):
            queryset = queryset.filter(actor_id=params['actor'])
        return queryset
