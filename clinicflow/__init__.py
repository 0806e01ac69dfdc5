"""ClinicFlow clinic data-access service."""
