# Generated migration file
from django.db import migrations, models
import django.utils.timezone

import apps.users.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='CustomUser',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, max_length=254, unique=True, verbose_name='email address')),
                ('username', models.CharField(blank=True, help_text='Optional. 150 characters or fewer.', max_length=150, verbose_name='display name')),
                ('role', models.CharField(choices=[('buyer', 'Buyer'), ('vendor', 'Vendor'), ('rider', 'Rider'), ('admin', 'Admin')], default='buyer', help_text='User role in the marketplace', max_length=10, verbose_name='role')),
                ('university', models.CharField(blank=True, help_text='Institution the user belongs to; scopes rider visibility', max_length=200, verbose_name='university')),
                ('address', models.TextField(blank=True, help_text='Personal delivery address used at checkout', verbose_name='delivery address')),
                ('phone', models.CharField(blank=True, max_length=20, verbose_name='phone')),
                ('fcm_token', models.CharField(blank=True, help_text='Device token for push notifications', max_length=255, verbose_name='push token')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into the admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'db_table': 'users_customuser',
                'ordering': ['-date_joined'],
            },
            managers=[
                ('objects', apps.users.models.CustomUserManager()),
            ],
        ),
    ]
