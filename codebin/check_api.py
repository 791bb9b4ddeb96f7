import os

import httpx

BASE = os.environ.get("CODEBIN_BASE_URL", "http://127.0.0.1:5000")


def main():
    try:
        r = httpx.get(f"{BASE}/api/status", timeout=5)
        print(f"GET /api/status: {r.status_code} {r.text[:200]}")
    except Exception as e:
        print(f"GET /api/status error: {e}")

    try:
        r = httpx.post(f"{BASE}/api/snippets", json={"content": "print(1)\n", "language": "python"}, timeout=5)
        print(f"POST /api/snippets: {r.status_code} {r.text[:120]}")
        if r.status_code == 201:
            sid = r.json()["id"]
            r = httpx.get(f"{BASE}/api/snippets/{sid}", timeout=5)
            print(f"GET /api/snippets/{sid}: {r.status_code} {r.text[:120]}")
    except Exception as e:
        print(f"snippet round-trip error: {e}")

    samples = [
        ("python", "def f(:\n    pass\n"),
        ("javascript", "function f() { var unused = 1; return undefinedVar; }\n"),
        ("java", "public class Main {\n    int x = 1\n}\n"),
    ]
    for language, code in samples:
        try:
            r = httpx.post(f"{BASE}/api/analyze/code", json={"language": language, "code": code}, timeout=60)
            print(f"POST /api/analyze/code [{language}]: {r.status_code} {r.text[:200]}")
        except Exception as e:
            print(f"POST /api/analyze/code [{language}] error: {e}")


if __name__ == "__main__":
    main()
