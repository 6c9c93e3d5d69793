"""Narration lines spoken during the verification workflow."""

READY = "Ready. Ask me to verify your annual KYC or issue your Life Certificate."
GREETING = "Hello! What would you like me to do?"
CUSTOMER_REQUEST = "Verify my annual KYC and issue life certificate."
MODE_QUESTION = "Do you want to proceed with Video KYC or Biometrics at agent location?"

CUSTOMER_CHOSE_REMOTE = "I'll do Video KYC (remote)."
CUSTOMER_CHOSE_AGENT_LOCATION = "I'll use biometrics at the agent location."
INITIATING = "Initiating verification sequence..."

CAPTURE_VIDEO = "Capturing live video & facescan (simulated)..."
CAPTURE_BIOMETRICS = "Reading fingerprint/IRIS if present (simulated)..."

VERIFIED = "Verification successful. Updating iCARE platform and issuing life certificate..."
SUSPICIOUS = "Verification produced suspicious signals. Asking follow-up questions..."

FOLLOW_UP_QUESTIONS = (
    "Please confirm your full name as per ID:",
    "Please provide your last 3 employment locations:",
    "Do you recognize these recent transactions on your account? (yes/no)",
)

ANSWERS_SUBMITTED = "Submitted follow-up answers."
RERUNNING = "Re-running verification with additional inputs..."
CLEARED = (
    "Additional information cleared the suspicious flags. "
    "Verification successful. Updating iCARE."
)
UNRESOLVED = (
    "Verification still unsuccessful. Please visit a NAPSA office for in-person "
    "verification. Notifying NAPSA staff..."
)
STAFF_ALERTED = "NAPSA staff alerted for manual follow-up."

CUSTOMER_VISIT = "I will visit a NAPSA office for in-person verification."
OFFICES_NOTIFIED = "NAPSA offices notified for follow-up."

CERTIFICATE_ISSUED = "Life Certificate issued (JSON)."
