"""Entry point to run the FastAPI backend."""

import os
import platform
import subprocess
import sys
from pathlib import Path

# Load .env file FIRST so the server process sees it
from dotenv import load_dotenv
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)
print(f"✅ Loaded environment from: {env_path}")


def kill_port(port: int):
    """Kill any process running on the specified port."""
    system = platform.system()

    try:
        if system == "Darwin" or system == "Linux":
            # macOS/Linux: Use lsof to find and kill process
            result = subprocess.run(
                ["lsof", "-ti", f":{port}"],
                capture_output=True,
                text=True
            )
            if result.stdout.strip():
                for pid in result.stdout.strip().split('\n'):
                    if pid:
                        print(f"   Killing process {pid} on port {port}...")
                        subprocess.run(["kill", "-9", pid], capture_output=True)
                print(f"   Port {port} cleared")
                return True
    except Exception as e:
        print(f"   Could not check port {port}: {e}")

    return False


def main():
    port = int(os.environ.get("PORT", "8000"))

    print("=" * 50)
    print("Starting Clinic Scheduling API")
    print("=" * 50)

    if not kill_port(port):
        print(f"   Port {port} is available")

    cwd = os.path.dirname(os.path.abspath(__file__))
    print(f"- API: http://localhost:{port}")
    print(f"- API Docs: http://localhost:{port}/docs")

    try:
        subprocess.run(
            [sys.executable, "-m", "uvicorn", "app.main:app", "--host", "0.0.0.0", "--port", str(port), "--reload"],
            cwd=cwd,
            env=os.environ.copy(),
        )
    except KeyboardInterrupt:
        print("Services stopped.")


if __name__ == "__main__":
    main()
