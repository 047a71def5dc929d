from dotenv import load_dotenv
import os

# Force reload to be sure
load_dotenv()

required_keys = [
    "DATABASE_URL",
    "SECRET_KEY",
]

optional_keys = [
    "ALLOWED_ORIGINS",
    "GENERIC_STATUS_TARGETS",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
    "LOG_LEVEL",
]


def mask(key, value):
    if ("SECRET" in key or "PASSWORD" in key) and len(value) > 3:
        return value[:2] + "****" + value[-1]
    if key == "DATABASE_URL" and "@" in value:
        scheme, _, rest = value.partition("://")
        return f"{scheme}://****@{rest.split('@', 1)[1]}"
    return value


print("--- Checking Environment Variables ---")
all_present = True
for key in required_keys:
    value = os.getenv(key)
    if value:
        print(f"✅ {key}: Found ({mask(key, value)})")
    else:
        print(f"❌ {key}: MISSING")
        all_present = False

for key in optional_keys:
    value = os.getenv(key)
    print(f"ℹ️  {key}: {mask(key, value) if value else 'default'}")

if all_present:
    print("\nSUCCESS: All required variables are loaded.")
else:
    print("\nFAILURE: Some variables are missing.")
