app_name = "meet_availability"
app_title = "Meet Availability"
app_publisher = "Sebastian Ortiz Valencia"
app_description = "Planes de disponibilidad grupal: slots recurrentes por zona horaria, respuestas de participantes y resultados agregados"
app_email = "sebastianortiz989@gmail.com"
app_license = "mit"

# Apps
# ------------------

# required_apps = []

# Site Config
# ------------------
# Keys read from site_config.json (all optional):
#   meet_availability_store: "frappe" (default) or "memory"
#   meet_availability_max_plan_slots: max generated slots per plan (default 50000)
#   meet_availability_max_upsert_batch: max facts per availability request (default 10000)

# Document Events
# ---------------
# Cascades run from the DocType controllers (on_trash); unique indexes are
# created in each controller's on_doctype_update.

# doc_events = {}

# Scheduled Tasks
# ---------------

# scheduler_events = {}

# Testing
# -------

# before_tests = "meet_availability.install.before_tests"

# Overriding Methods
# ------------------------------
#
# override_whitelisted_methods = {}
