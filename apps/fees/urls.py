# fees/urls.py

from django.urls import path
from . import views

app_name = 'fees'

urlpatterns = [
    # =============================================================================
    # FEE STRUCTURES
    # =============================================================================
    path('structures/', views.fee_structure_list, name='fee_structure_list'),
    path('structures/create/', views.fee_structure_create, name='fee_structure_create'),
    path('structures/<uuid:structure_id>/', views.fee_structure_detail, name='fee_structure_detail'),

    # =============================================================================
    # STUDENT LEDGER
    # =============================================================================
    path('students/<uuid:student_id>/summary/', views.student_fee_summary, name='student_fee_summary'),
    path('students/<uuid:student_id>/invoices/', views.student_invoices, name='student_invoices'),
    path('students/<uuid:student_id>/payments/', views.student_payments, name='student_payments'),
    path('students/<uuid:student_id>/receipts/recent/', views.recent_receipts, name='recent_receipts'),
    path('students/<uuid:student_id>/receipts/', views.all_receipts, name='all_receipts'),

    # =============================================================================
    # SCHOOL-WIDE
    # =============================================================================
    path('outstanding/', views.outstanding_fees, name='outstanding_fees'),
    path('overview/', views.financial_overview, name='financial_overview'),
    path('reports/settings/', views.report_configuration, name='report_settings'),
]
