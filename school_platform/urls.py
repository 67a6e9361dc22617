from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication & Profile ---
    path('api/', include('users.urls')),

    # --- Student Exam Taking ---
    path('api/cbt/', include('assessments.urls')),

    # --- Teacher/Admin Exam Management ---
    path('api/cbt/admin/', include('exams.urls')),

    # --- School Settings & Audit Trail ---
    path('api/', include('cores.urls')),
]
