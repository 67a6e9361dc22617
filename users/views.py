from rest_framework import generics, permissions
from rest_framework_simplejwt.views import TokenObtainPairView

from cores.models import AuditLog
from .serializers import CustomTokenObtainPairSerializer, UserSerializer


class CustomLoginView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        if response.status_code == 200:
            AuditLog.objects.create(
                actor_id=response.data['user']['id'],
                action='LOGIN',
                target_model='User',
                target_object_id=str(response.data['user']['id']),
                ip_address=request.META.get('REMOTE_ADDR'),
            )
        return response

class UserProfileView(generics.RetrieveUpdateAPIView):
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user
