import os
import json
import requests
from dotenv import load_dotenv

# Load .env variables
load_dotenv()

BASE_URL = os.getenv("KEYHOOK_BASE_URL", "http://127.0.0.1:3002")
TOKEN = os.getenv("KEYHOOK_TOKEN")

auth = {"Authorization": f"Bearer {TOKEN}"}

# Create a hook to receive the test payload
resp = requests.post(f"{BASE_URL}/hooks", json={"name": "test-hook"}, headers=auth, timeout=10)
print("Create:", resp.status_code, resp.json())
hook = resp.json()

# Payload to send
payload = {
    "action": "opened",
    "pull_request": {"title": "Test PR"},
    "repository": {"full_name": "myuser/myrepo"}
}

# Deliver it to the public webhook URL of the new hook
resp = requests.post(
    f"{BASE_URL}/webhook/{hook['id']}",
    headers={"Content-Type": "application/json", "X-GitHub-Event": "pull_request"},
    data=json.dumps(payload).encode("utf-8"),
    params={"source": "send_test_webhook"},
    timeout=10,
)
print("Deliver:", resp.status_code, resp.json())

# Poll it back
resp = requests.get(f"{BASE_URL}/hooks/{hook['id']}/events", headers=auth, timeout=10)
print("Poll:", resp.status_code)
print(json.dumps(resp.json(), indent=2))
