import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('teachers', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Subject',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='e.g., Mathematics, English Language, Basic Science', max_length=100)),
                ('code', models.CharField(help_text='e.g., MTH, ENG', max_length=20, unique=True)),
                ('is_core', models.BooleanField(default=True, help_text='Core subjects are mandatory')),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Subject',
                'verbose_name_plural': 'Subjects',
                'ordering': ['-is_core', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Class',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('level_type', models.CharField(choices=[('junior', 'Junior Secondary'), ('senior', 'Senior Secondary')], default='junior', max_length=10)),
                ('level_number', models.PositiveSmallIntegerField(help_text='1, 2, 3')),
                ('arm', models.CharField(help_text='A, B, C, D', max_length=5)),
                ('name', models.CharField(editable=False, help_text='Auto-generated: JSS1 A, SSS2 B', max_length=20)),
                ('capacity', models.PositiveIntegerField(default=40, help_text='Maximum number of students')),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('form_teacher', models.ForeignKey(blank=True, help_text="The form teacher responsible for this class's register.", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='form_classes', to='teachers.teacher')),
            ],
            options={
                'verbose_name': 'Class',
                'verbose_name_plural': 'Classes',
                'ordering': ['level_type', 'level_number', 'arm'],
                'unique_together': {('level_type', 'level_number', 'arm')},
            },
        ),
        migrations.CreateModel(
            name='ClassSubject',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('class_assigned', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subjects', to='academics.class')),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='class_allocations', to='academics.subject')),
                ('teacher', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='subject_assignments', to='teachers.teacher')),
            ],
            options={
                'verbose_name': 'Subject Allocation',
                'verbose_name_plural': 'Subject Allocations',
                'unique_together': {('class_assigned', 'subject')},
            },
        ),
    ]
