# Generated initial migration for jurisdictions app

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Jurisdiction',
            fields=[
                ('code', models.CharField(help_text='PSGC barangay code', max_length=10, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('city_municipality_name', models.CharField(blank=True, default='', max_length=255)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'jurisdictions',
                'ordering': ['code'],
            },
        ),
    ]
