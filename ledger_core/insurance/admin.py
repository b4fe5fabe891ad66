from django.contrib import admin

from ledger_core.insurance.models import PatientCoverage


@admin.register(PatientCoverage)
class PatientCoverageAdmin(admin.ModelAdmin):
    list_display = ("patient_id", "provider_name", "policy_number", "status", "start_date", "end_date")
    list_filter = ("status", "provider_name")
    search_fields = ("patient_id", "policy_number")
