#!/usr/bin/env python3
"""
Apply migrations, then serve the API with uvicorn
"""
import os
import subprocess
import sys


def run_migrations() -> bool:
    print("🔄 Applying migrations (alembic upgrade head)...")
    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True
        )
    except subprocess.CalledProcessError as e:
        print("❌ Migrations failed:")
        print(e.stderr)
        return False
    print("✅ Schema is up to date")
    print(result.stdout)
    return True


def start_server():
    port = os.getenv("PORT", "10000")
    print(f"🚀 Serving on port {port}...")
    subprocess.run(["uvicorn", "main:app", "--host", "0.0.0.0", "--port", port])


if __name__ == "__main__":
    if not run_migrations():
        sys.exit(1)
    start_server()
