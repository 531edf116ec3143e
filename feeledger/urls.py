# feeledger/urls.py

from django.urls import path, include

urlpatterns = [
    path('accounts/', include('accounts.urls')),
    path('academics/', include('academics.urls')),
    path('students/', include('students.urls')),
    path('fees/', include('fees.urls')),
]
