"""Terminal front-end for a running counsel server.

Run with:
    uv run -m counsel.console
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import logfire
from dotenv import load_dotenv

from counsel.client import CounselClient
from counsel.controller import SessionController


class FilePlayer:
    """Saves each spoken reply as an MP3 next to the working directory."""

    def __init__(self, path: Path):
        self.path = path

    async def play(self, audio: bytes) -> None:
        self.path.write_bytes(audio)
        print(f"🔊 Krishna's voice saved to {self.path}")


async def run(base_url: str) -> None:
    print("🪈 Krishna's Divine Counsel 🪈")
    print("Ask your question, or type:")
    print("- 'speech' to switch between text and spoken replies")
    print("- 'listen <file>' to ask with a recorded question")
    print("- 'expand' to show or hide the last reply")
    print("- 'quit' to exit\n")

    client = CounselClient.connect(base_url)
    controller = SessionController(client, FilePlayer(Path("krishna_reply.mp3")))
    try:
        while True:
            user_input = input("🙏 Seek guidance: ").strip()

            if user_input == "quit":
                print("ॐ शान्तिः (Om Shanti)")
                break
            elif user_input == "speech":
                mode = "speech" if controller.toggle_speech() else "text"
                print(f"Replies will now come as {mode}.")
                continue
            elif user_input == "expand":
                controller.toggle_expanded()
                print(controller.visible_response or "(reply hidden)")
                continue
            elif user_input.startswith("listen "):
                path = Path(user_input.removeprefix("listen ").strip())
                if not path.is_file():
                    print(f"No recording at {path}")
                    continue
                answer = await controller.transcribe_file(path)
            else:
                answer = await controller.submit_text(user_input)

            print(f"\n{answer}\n")
    finally:
        await client.aclose()


def main():
    load_dotenv()
    logfire.configure(send_to_logfire="if-token-present", console=False)
    logfire.instrument_httpx()
    asyncio.run(run(os.getenv("COUNSEL_URL", "http://127.0.0.1:8000")))


if __name__ == "__main__":
    main()
