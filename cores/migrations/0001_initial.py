from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Tenant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150)),
                ('slug', models.SlugField(max_length=80, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='PlatformSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('site_name', models.CharField(default='Exam Platform', max_length=100)),
                ('support_email', models.EmailField(default='support@example.org', max_length=254)),
                ('default_exam_duration', models.IntegerField(default=60, help_text='Default duration in minutes')),
                ('strict_proctoring', models.BooleanField(default=False)),
                ('timer_warning_fraction', models.FloatField(default=0.25, help_text='Share of the duration left when the timer turns amber')),
                ('timer_critical_fraction', models.FloatField(default=0.1, help_text='Share of the duration left when the timer turns red')),
                ('max_upload_mb', models.PositiveIntegerField(default=10)),
            ],
        ),
    ]
