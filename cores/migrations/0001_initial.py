import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SchoolSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('school_name', models.CharField(default='The Quiverfull School', max_length=100)),
                ('support_email', models.EmailField(default='info@school.example', max_length=254)),
                ('currency', models.CharField(default='₦', max_length=8)),
                ('current_term', models.CharField(blank=True, default='First Term', max_length=50)),
                ('current_academic_year', models.CharField(blank=True, max_length=20)),
                ('pass_mark_percentage', models.PositiveIntegerField(default=50, help_text='Pass mark percentage for CBT results')),
                ('default_exam_duration', models.PositiveIntegerField(default=30, help_text='Minutes, used when a new exam gives none')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'school settings',
                'verbose_name_plural': 'school settings',
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('CREATE', 'Create'), ('UPDATE', 'Update'), ('DELETE', 'Delete'), ('LOGIN', 'Login'), ('PUBLISH', 'Publish Toggled'), ('IMPORT', 'Questions Imported'), ('SUBMIT', 'Exam Submitted'), ('SETTINGS', 'Settings Changed')], max_length=20)),
                ('target_model', models.CharField(help_text='e.g., Exam, ExamSession, User', max_length=50)),
                ('target_object_id', models.CharField(blank=True, max_length=100, null=True)),
                ('details', models.TextField(blank=True, help_text='Description of changes')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp'],
            },
        ),
    ]
