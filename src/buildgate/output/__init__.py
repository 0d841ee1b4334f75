"""Human and machine output for ServiceResult."""
