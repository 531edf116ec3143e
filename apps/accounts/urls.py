# accounts/urls.py

from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('me/', views.current_user, name='current_user'),
    path('profiles/<uuid:profile_id>/role/', views.update_user_role, name='update_user_role'),
]
