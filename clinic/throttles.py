from rest_framework.permissions import SAFE_METHODS
from rest_framework.throttling import UserRateThrottle


class PatientWriteThrottle(UserRateThrottle):
    """Per-user limit on patient writes; reads are not counted."""
    scope = 'patient_write'

    def allow_request(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().allow_request(request, view)
