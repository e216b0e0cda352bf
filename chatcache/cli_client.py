import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import httpx


BASE_URL = os.getenv("CHATCACHE_BASE_URL", "http://127.0.0.1:3000").rstrip("/")
CHAT_PATH = "/api/chat"
SESSION_PATH = "/api/session/{session_id}"
SESSIONS_PATH = "/api/sessions"
HEALTH_PATH = "/health"

HELP_TEXT = """Commands:
/help     - show this help
/exit     - quit
/new      - start a new conversation
/session  - show the current session id
/sessions - list live sessions on the server
/clear    - delete the current session on the server
/health   - show server health
/log      - show current log file"""


def append_log(log_path: Path, event: str, payload: dict[str, Any]) -> None:
    row = {
        "ts": datetime.now().isoformat(timespec="seconds"),
        "event": event,
        **payload,
    }
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(row, ensure_ascii=False) + "\n")


def print_chat_response(data: dict[str, Any]) -> None:
    text = data.get("response", "")
    if text:
        print(f"ZenGuard> {text}")

    level = data.get("interventionLevel")
    if level and level != "none":
        print(f"[intervention] {level}")


def print_sessions(data: dict[str, Any]) -> None:
    print(f"[sessions] total={data.get('total', 0)}")
    for row in data.get("sessions", []):
        print(f"  {row['sessionId']}  messages={row['messageCount']}  expires in {row['expiresIn']}")


class ChatCLI:
    """
    Interactive terminal client. Keeps the session id returned by the server
    so every line continues the same conversation.
    """

    def __init__(self, client: httpx.Client, log_path: Path):
        self.client = client
        self.log_path = log_path
        self.session_id: Optional[str] = None

    def send(self, message: str) -> Optional[dict[str, Any]]:
        payload: dict[str, Any] = {"message": message}
        if self.session_id:
            payload["sessionId"] = self.session_id
        append_log(self.log_path, "user_message", payload)

        try:
            resp = self.client.post(CHAT_PATH, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except json.JSONDecodeError:
            print("[error] Chat response was not valid JSON.")
            append_log(self.log_path, "chat_error", {"error": "invalid_json"})
            return None
        except Exception as exc:
            print(f"[error] Chat request failed: {exc}")
            append_log(self.log_path, "chat_error", {"error": str(exc)})
            return None

        self.session_id = data.get("sessionId", self.session_id)
        print_chat_response(data)
        append_log(self.log_path, "assistant_response", data)
        return data

    def clear(self) -> bool:
        if not self.session_id:
            print("[clear] no active session")
            return False
        resp = self.client.delete(SESSION_PATH.format(session_id=self.session_id))
        cleared = resp.status_code == 200
        print(f"[clear] {resp.json().get('message') or resp.json().get('error')}")
        append_log(self.log_path, "session_cleared", {"sessionId": self.session_id, "ok": cleared})
        self.session_id = None
        return cleared

    def handle_command(self, command: str) -> bool:
        """Runs a slash command. Returns False when the client should exit."""
        if command in {"/exit", "/quit"}:
            print("Bye.")
            append_log(self.log_path, "session_end", {"reason": "user_exit"})
            return False

        if command == "/help":
            print(HELP_TEXT)
        elif command == "/new":
            self.session_id = None
            print("[new] next message starts a new conversation")
        elif command == "/session":
            print(f"session: {self.session_id or '(none yet)'}")
        elif command == "/sessions":
            resp = self.client.get(SESSIONS_PATH)
            print_sessions(resp.json())
        elif command == "/clear":
            self.clear()
        elif command == "/health":
            print(json.dumps(self.client.get(HEALTH_PATH).json(), indent=2))
        elif command == "/log":
            print(f"log: {self.log_path}")
        else:
            print(f"Unknown command {command}. Type /help.")
        return True


def main() -> None:
    logs_dir = Path.cwd() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"chat-{datetime.now().strftime('%Y%m%d-%H%M%S')}.jsonl"

    print("ZenGuard CLI chat")
    print(f"Server: {BASE_URL}")
    print(f"Log: {log_path}")
    print("Type /exit to quit. Type /help for commands.")
    append_log(log_path, "cli_start", {"base_url": BASE_URL})

    with httpx.Client(base_url=BASE_URL, timeout=120.0) as client:
        try:
            health = client.get(HEALTH_PATH)
            health.raise_for_status()
            print("[connected] /health OK")
            append_log(log_path, "health_ok", {"status_code": health.status_code})
        except Exception as exc:
            print(f"[error] Server is not reachable: {exc}")
            append_log(log_path, "health_error", {"error": str(exc)})
            return

        cli = ChatCLI(client, log_path)
        while True:
            try:
                message = input("You> ").strip()
            except (EOFError, KeyboardInterrupt):
                print("\nBye.")
                break

            if not message:
                continue
            if message.startswith("/"):
                if not cli.handle_command(message):
                    break
                continue
            cli.send(message)


if __name__ == "__main__":
    main()
