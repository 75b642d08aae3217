# Generated initial migration for accounts app

from django.db import migrations, models
import django.db.models.deletion


ROLES = [
    # name, permissions, is_jurisdiction_admin, allows_self_signup
    ('super_admin', {'all': True}, False, False),
    ('admin', {'residents': 'crud', 'households': 'crud', 'settings': 'manage'}, True, True),
    ('clerk', {'residents': 'crud', 'households': 'crud'}, False, True),
    ('resident', {'residents': 'read_own'}, False, True),
]


def seed_roles(apps, schema_editor):
    Role = apps.get_model('accounts', 'Role')
    for name, permissions, is_jurisdiction_admin, allows_self_signup in ROLES:
        Role.objects.update_or_create(
            name=name,
            defaults={
                'permissions': permissions,
                'is_jurisdiction_admin': is_jurisdiction_admin,
                'allows_self_signup': allows_self_signup,
            },
        )


def unseed_roles(apps, schema_editor):
    Role = apps.get_model('accounts', 'Role')
    Role.objects.filter(name__in=[r[0] for r in ROLES]).delete()


def link_profiles_to_auth_users(apps, schema_editor):
    """Reference Supabase's auth.users when running against a Supabase database."""
    connection = schema_editor.connection
    if connection.vendor != 'postgresql':
        return
    with connection.cursor() as cursor:
        cursor.execute("SELECT to_regclass('auth.users')")
        if cursor.fetchone()[0] is None:
            return
    schema_editor.execute(
        'ALTER TABLE profiles ADD CONSTRAINT profiles_id_auth_users_fk '
        'FOREIGN KEY (id) REFERENCES auth.users(id) ON DELETE CASCADE'
    )


def unlink_profiles_from_auth_users(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return
    schema_editor.execute('ALTER TABLE profiles DROP CONSTRAINT IF EXISTS profiles_id_auth_users_fk')


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('jurisdictions', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Role',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50, unique=True)),
                ('permissions', models.JSONField(blank=True, default=dict, help_text='Mapping of resource to allowed actions')),
                ('is_jurisdiction_admin', models.BooleanField(default=False, help_text='At most one active profile with this role per jurisdiction')),
                ('allows_self_signup', models.BooleanField(default=True, help_text='Whether the public signup form may request this role')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'roles',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Profile',
            fields=[
                ('id', models.UUIDField(editable=False, help_text='Supabase identity id', primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('mobile_number', models.CharField(blank=True, default='', max_length=20)),
                ('is_jurisdiction_admin', models.BooleanField(default=False, editable=False)),
                ('status', models.CharField(choices=[('pending_approval', 'Pending approval'), ('active', 'Active'), ('rejected', 'Rejected')], default='pending_approval', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('jurisdiction', models.ForeignKey(blank=True, db_column='jurisdiction_code', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='profiles', to='jurisdictions.jurisdiction')),
                ('role', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='profiles', to='accounts.role')),
            ],
            options={
                'db_table': 'profiles',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['jurisdiction', 'status'], name='profiles_jurisdiction_status')],
                'constraints': [models.UniqueConstraint(condition=models.Q(('is_jurisdiction_admin', True), models.Q(('status', 'rejected'), _negated=True)), fields=('jurisdiction',), name='uniq_active_jurisdiction_admin')],
            },
        ),
        migrations.CreateModel(
            name='Registration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('identity_id', models.UUIDField(unique=True)),
                ('password_hash', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'registrations',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['completed_at', 'created_at'], name='registrations_pending_idx')],
            },
        ),
        migrations.RunPython(seed_roles, unseed_roles),
        migrations.RunPython(link_profiles_to_auth_users, unlink_profiles_from_auth_users),
    ]
