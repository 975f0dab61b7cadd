from hypothesis import HealthCheck, settings

# Input-generation timing depends on machine load; don't fail runs on it.
settings.register_profile("default", suppress_health_check=[HealthCheck.too_slow])
settings.load_profile("default")
