"""
URL configuration for Univend users app.
Location: apps/users/urls.py
"""
from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    # ==========================================
    # PROFILE
    # ==========================================
    path('', views.profile_detail, name='profile_detail'),
    path('update/', views.profile_update, name='profile_update'),
    path('fcm-token/', views.save_fcm_token, name='save_fcm_token'),
]
