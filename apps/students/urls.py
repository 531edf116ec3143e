# students/urls.py

from django.urls import path
from . import views

app_name = 'students'

urlpatterns = [
    path('guardian/children/', views.guardian_children, name='guardian_children'),
    path('roster/', views.class_roster, name='class_roster'),
]
