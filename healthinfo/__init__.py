"""Health information API: client registry, health programs and enrollments."""
