"""CLI adapter — reads text from argv/stdin, streams the answer to stdout."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import TextIO

from advisor_engine import create_engine
from advisor_engine.engine.errors import EngineError
from advisor_engine.engine.orchestrator import Orchestrator


async def run_cli(
    text: str,
    conversation_id: str = "cli-default",
    engine: Orchestrator | None = None,
    out: TextIO | None = None,
) -> int:
    engine = engine or create_engine()
    out = out or sys.stdout
    try:
        async for fragment in engine.stream(text, conversation_id=conversation_id):
            out.write(fragment)
            out.flush()
    except EngineError as exc:
        print(json.dumps(exc.to_dict(), default=str), file=sys.stderr)
        return 1
    out.write("\n")
    return 0


def main() -> None:
    if len(sys.argv) > 1:
        text = " ".join(sys.argv[1:])
    else:
        raw = sys.stdin.read().strip()
        if not raw:
            print("Usage: advisor-cli <text>  OR  echo '{\"text\":\"...\"}' | advisor-cli", file=sys.stderr)
            sys.exit(1)
        try:
            data = json.loads(raw)
            text = data.get("text", raw) if isinstance(data, dict) else raw
        except json.JSONDecodeError:
            text = raw

    sys.exit(asyncio.run(run_cli(text)))


if __name__ == "__main__":
    main()
