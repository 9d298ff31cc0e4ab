"""OAuth scopes used by the Dock Health examples."""

DEVELOPER_READ = "dockhealth/system.developer.read"
DEVELOPER_WRITE = "dockhealth/system.developer.write"
SYSTEM_ORG_READ = "dockhealth/system.org.read"
SYSTEM_ORG_WRITE = "dockhealth/system.org.write"
SYSTEM_USER_READ = "dockhealth/system.user.read"
SYSTEM_USER_WRITE = "dockhealth/system.user.write"
USER_READ = "dockhealth/user.all.read"
USER_WRITE = "dockhealth/user.all.write"
PATIENT_READ = "dockhealth/patient.all.read"
PATIENT_WRITE = "dockhealth/patient.all.write"

# Read/write on behalf of a user
USER_SCOPES = [USER_READ, USER_WRITE]
PATIENT_SCOPES = [PATIENT_READ, PATIENT_WRITE]
