import os
from dotenv import load_dotenv

load_dotenv()

PROJECT_ID = os.getenv("GCP_PROJECT_ID")
SA_KEY_PATH = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

# "firestore" talks to the real project (or the emulator). "memory" starts with an empty
# in-process store that nothing fills, so every post lookup is NotFound: tests and smoke runs only
STORE_BACKEND = os.getenv("RULES_STORE_BACKEND", "firestore").lower()

# Deadline for the resolver's document fetches
FETCH_TIMEOUT_SECONDS = float(os.getenv("RULES_FETCH_TIMEOUT_SECONDS", "2.0"))

# When enabled, isModerator is also read from users/{uid}
PROFILE_CLAIMS_ENABLED = os.getenv("RULES_PROFILE_CLAIMS", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
