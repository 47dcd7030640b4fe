#!/usr/bin/env python3
"""
End-to-end smoke test for a running dental practice server.

Run ``python manage.py seed_demo`` first, then start the server and run
this script. Every step is reported; the exit code is non-zero when any
step fails.
"""
import os
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import requests

BASE_URL = os.getenv("SMOKE_BASE_URL", "http://127.0.0.1:8000")

TEST_USERS = {
    "owner": {"username": "demo_owner", "password": "demo12345"},
    "dentist": {"username": "demo_dentist", "password": "demo12345"},
}


@dataclass
class TestResult:
    success: bool
    endpoint: str
    method: str
    status_code: int
    response_time: float
    error_message: str = ""
    description: str = ""
    user_role: str = ""


class SmokeTester:
    def __init__(self):
        self.session = requests.Session()
        self.headers = {}
        self.current_role = None
        self.user_id = None
        self.test_results = []
        self.error_results = []
        self.last_json = None

    def login(self, role: str) -> bool:
        user = TEST_USERS[role]
        print(f"🔐 logging in as {user['username']} ({role})...")
        result = self.call("POST", "/api/auth/login", {"username": user["username"], "password": user["password"]},
                           description=f"login {role}", auth=False)
        if not result.success:
            return False
        data = self.last_json or {}
        self.headers = {"Authorization": f"Bearer {data.get('jwt_access')}", "Content-Type": "application/json"}
        self.current_role = role
        self.user_id = (data.get("user") or {}).get("id")
        return True

    def call(self, method: str, endpoint: str, data: Optional[Dict] = None, expected_status: int = 200,
             description: str = "", auth: bool = True, headers: Optional[Dict[str, str]] = None) -> TestResult:
        url = f"{BASE_URL}{endpoint}"
        all_headers = dict(self.headers if auth else {"Content-Type": "application/json"})
        all_headers.update(headers or {})
        self.last_json = None
        start_time = time.time()
        try:
            response = self.session.request(method.upper(), url, json=data, headers=all_headers, timeout=30)
            response_time = time.time() - start_time
            if "application/json" in response.headers.get("Content-Type", ""):
                self.last_json = response.json()
            success = response.status_code == expected_status
            result = TestResult(
                success=success,
                endpoint=endpoint,
                method=method,
                status_code=response.status_code,
                response_time=response_time,
                error_message="" if success else response.text[:200],
                description=description,
                user_role=self.current_role or "",
            )
        except requests.RequestException as e:
            result = TestResult(
                success=False,
                endpoint=endpoint,
                method=method,
                status_code=0,
                response_time=time.time() - start_time,
                error_message=str(e),
                description=description,
                user_role=self.current_role or "",
            )
        mark = "✅" if result.success else "❌"
        print(f"{mark} {method} {endpoint} - {result.status_code} ({result.response_time:.2f}s) {description}")
        self.test_results.append(result)
        if not result.success:
            self.error_results.append(result)
        return result

    def data(self) -> Any:
        return (self.last_json or {}).get("data")

    def run(self) -> bool:
        self.call("GET", "/healthz", description="health", auth=False)
        if not self.login("owner"):
            return False

        self.call("GET", "/api/user/profile", description="profile")
        self.call("POST", "/api/patients", {
            "firstName": "Smoke",
            "lastName": f"Test {int(time.time())}",
            "dateOfBirth": "1990-01-01",
            "gender": "OTHER",
            "bsn": "000000000",
            "address": {"display_name": "Amsterdam"},
            "medicalHistory": {"smoking": True},
        }, expected_status=201, description="create patient")
        patient = self.data() or {}
        pid = patient.get("id")
        if not pid:
            return False

        self.call("GET", f"/api/patients/{pid}", description="patient detail")
        self.call("POST", f"/api/patients/{pid}/pps", {
            "quadrant1": 1, "quadrant2": 2, "quadrant3": 1, "quadrant4": 0,
        }, expected_status=201, description="PPS record")

        self.call("GET", "/api/dental-codes?search=C002", description="code search")
        codes = self.data() or []
        if codes:
            self.call("POST", f"/api/patients/{pid}/dental-procedures", {
                "codeId": codes[0]["id"], "date": datetime.now().astimezone().isoformat(), "toothNumber": 16,
            }, expected_status=201, description="create procedure")
            proc = self.data() or {}
            self.call("POST", "/api/dental-procedures/undo", headers={"X-Entity-Id": str(proc.get("id"))},
                      description="undo create")
            self.call("POST", "/api/dental-procedures/redo", description="redo create")
            self.call("GET", f"/api/patients/{pid}/treatment-plan", description="budget")
            self.call("POST", f"/api/patients/{pid}/dental-procedures/pay", {
                "procedureIds": [proc.get("id")], "paymentMethod": "CASH",
            }, description="cash payment")

        self.call("POST", f"/api/patients/{pid}/dental", {
            "periodontalChart": {
                "teeth": {"16": {"buccal": {"distal": {"pocketDepth": 6, "bleeding": True}}}},
                "isExplicitlySaved": True,
            },
        }, description="save periodontal chart")

        self.call("GET", "/api/practitioners?includeColors=true", description="practitioners")
        practitioners = self.data() or []
        if practitioners:
            start = (datetime.now().astimezone() + timedelta(days=1)).replace(hour=15, minute=0, second=0, microsecond=0)
            self.call("POST", "/api/appointments", {
                "patientId": pid, "practitionerId": practitioners[0]["id"],
                "startTime": start.isoformat(), "duration": 30, "type": "Check-up",
            }, expected_status=201, description="create appointment")
            appt = self.data() or {}
            self.call("PATCH", f"/api/appointments/{appt.get('id')}/status", {
                "status": {"type": "waiting_room"},
            }, description="appointment status")
            self.call("GET", f"/api/calendar?date={start.date().isoformat()}&view=week", description="calendar")
            self.call("DELETE", f"/api/appointments?id={appt.get('id')}", description="delete appointment")

        self.call("GET", "/api/appointments/statuses", description="status table")
        self.call("GET", "/api/email-templates?search=welcome", description="email templates")
        self.call("GET", "/api/logs?pageSize=5", description="activity log")

        self.login("dentist")
        self.call("GET", "/api/logs", expected_status=403, description="logs are manager only")
        return not self.error_results

    def report(self):
        total = len(self.test_results)
        passed = total - len(self.error_results)
        rate = (passed / total * 100) if total else 0
        print(f"\n📊 {passed}/{total} steps passed ({rate:.1f}%)")
        for r in self.error_results:
            print(f"  ❌ [{r.user_role}] {r.method} {r.endpoint} -> {r.status_code}: {r.error_message}")


def main():
    tester = SmokeTester()
    ok = tester.run()
    tester.report()
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
