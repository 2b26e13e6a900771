"""
Scheduling Constants

Limits and defaults shared by the slot generator, validation and the
plan service. Site-level overrides for the limits are read by the API
layer from frappe.conf and injected into PlanService.
"""

# Granularidades permitidas (minutos)
ALLOWED_SLOT_MINUTES = (15, 30, 60)

# 0 = Domingo ... 6 = Sábado
ALL_WORKING_DAYS = (0, 1, 2, 3, 4, 5, 6)

DEFAULT_DAY_START = "09:00"
DEFAULT_DAY_END = "17:00"
DEFAULT_SLOT_MINUTES = 30

# Techos duros
MAX_PLAN_SLOTS = 50_000
MAX_UPSERT_BATCH = 10_000

# Cantidad de keys inválidas que se muestran en el mensaje de error
FOREIGN_KEY_SAMPLE_SIZE = 3

DEFAULT_TOP_SLOTS = 10

SLOT_KEY_FORMAT = "%Y-%m-%dT%H:%M"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
