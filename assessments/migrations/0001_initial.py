import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('exams', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ExamSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('started_at', models.DateTimeField()),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('auto_submitted', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('in_progress', 'In Progress'), ('submitted', 'Submitted'), ('graded', 'Graded')], default='in_progress', max_length=20)),
                ('score', models.DecimalField(blank=True, decimal_places=2, max_digits=7, null=True)),
                ('total_points', models.PositiveIntegerField(blank=True, null=True)),
                ('exam', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sessions', to='exams.exam')),
                ('participant', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='exam_sessions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('exam', 'participant'), name='one_session_per_participant')],
            },
        ),
        migrations.CreateModel(
            name='SessionAnswer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('value', models.TextField(blank=True)),
                ('revision', models.BigIntegerField(default=0)),
                ('file_url', models.URLField(blank=True, max_length=500)),
                ('file_size', models.PositiveBigIntegerField(blank=True, null=True)),
                ('file_name', models.CharField(blank=True, max_length=255)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('question', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='exams.question')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='answer_rows', to='assessments.examsession')),
            ],
            options={
                'unique_together': {('session', 'question')},
            },
        ),
        migrations.CreateModel(
            name='ManualGrade',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('awarded_points', models.DecimalField(decimal_places=2, max_digits=7)),
                ('feedback', models.TextField(blank=True)),
                ('graded_at', models.DateTimeField()),
                ('grader', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='grades_given', to=settings.AUTH_USER_MODEL)),
                ('question', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='exams.question')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='manual_grades', to='assessments.examsession')),
            ],
            options={
                'unique_together': {('session', 'question')},
            },
        ),
        migrations.CreateModel(
            name='ScoringIssue',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=40)),
                ('detail', models.TextField(blank=True)),
                ('detected_at', models.DateTimeField(auto_now_add=True)),
                ('resolved', models.BooleanField(default=False)),
                ('question', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='exams.question')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='scoring_issues', to='assessments.examsession')),
            ],
            options={
                'ordering': ['-detected_at'],
                'unique_together': {('session', 'question', 'code')},
            },
        ),
    ]
