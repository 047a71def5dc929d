"""Smoke test against a running server.

Walks one report through the volunteer workflow:
signup -> report -> reserve -> start -> resolve -> stats -> claim.
"""
import os
import time

import requests

BASE_URL = os.getenv("BASE_URL", "http://127.0.0.1:8000")
TIMEOUT = 10


def post(path, **kwargs):
    return requests.post(f"{BASE_URL}{path}", timeout=TIMEOUT, **kwargs)


def patch(path, **kwargs):
    return requests.patch(f"{BASE_URL}{path}", timeout=TIMEOUT, **kwargs)


def get(path, **kwargs):
    return requests.get(f"{BASE_URL}{path}", timeout=TIMEOUT, **kwargs)


def signup(name, role):
    email = f"{role}_{int(time.time() * 1000)}@example.com"
    resp = post("/auth/signup", json={"name": name, "email": email, "password": "testpassword123", "role": role})
    print(f"Signup {role}: {resp.status_code} - {resp.text}")
    resp.raise_for_status()
    return resp.json()


def check_backend():
    print(f"Testing connectivity to {BASE_URL}...")
    resp = get("/health")
    print(f"Health endpoint status: {resp.status_code}")
    if resp.status_code != 200:
        print("FAILED: Backend seems down or returning error.")
        return False

    citizen = signup("Smoke Citizen", "citizen")
    volunteer = signup("Smoke Volunteer", "volunteer")

    resp = post("/reports", json={
        "userId": citizen["id"],
        "category": "Garbage Dumping",
        "description": "Smoke test report",
        "location": "Test Street",
        "coordinates": {"latitude": 22.57, "longitude": 88.36},
    })
    print(f"Create report: {resp.status_code}")
    if resp.status_code != 201:
        print("Create report FAILED:", resp.text)
        return False
    report_id = resp.json()["id"]

    before = get(f"/volunteers/{volunteer['id']}/stats").json()["ecoPoints"]

    steps = [
        ("Reserve", f"/reports/{report_id}/status", {"status": "Pending", "assignedTo": volunteer["id"]}),
        ("Start", f"/reports/{report_id}/status", {"status": "In Progress", "assignedTo": volunteer["id"]}),
        ("Resolve", f"/reports/{report_id}/resolve", {"userId": volunteer["id"], "image": "aGVsbG8=", "notes": "Cleaned"}),
    ]
    for label, path, body in steps:
        resp = patch(path, json=body)
        print(f"{label}: {resp.status_code}")
        if resp.status_code != 200:
            print(f"{label} FAILED:", resp.text)
            return False

    report = get(f"/reports/{report_id}").json()
    print("Final status:", report["status"], "resolved by", report["resolvedBy"])

    after = get(f"/volunteers/{volunteer['id']}/stats").json()["ecoPoints"]
    print(f"EcoPoints: {before} -> {after}")
    if after - before != 10:
        print("FAILED: expected +10 EcoPoints for a resolved task")
        return False

    resp = post("/rewards/claim", json={"userId": volunteer["id"], "rewardId": "water-bottle"})
    if resp.status_code == 400:
        print("SUCCESS: Claim refused as expected (not enough points).")
    else:
        print("WARNING: Claim returned", resp.status_code, resp.text)

    print("Smoke test complete.")
    return True


if __name__ == "__main__":
    try:
        check_backend()
    except requests.RequestException as e:
        print(f"EXCEPTION: {e}")
