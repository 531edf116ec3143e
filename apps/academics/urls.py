# academics/urls.py

from django.urls import path
from . import views

app_name = 'academics'

urlpatterns = [
    path('terms/active/', views.active_term, name='active_term'),
    path('terms/<uuid:term_id>/activate/', views.set_active_term, name='set_active_term'),
]
