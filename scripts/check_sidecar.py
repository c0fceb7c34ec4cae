#!/usr/bin/env python3
"""
Quick sanity script for a running mini assistant sidecar.

Workflow:
- GET /health and print which capabilities have an assistant.
- GET /settings and print the active provider slots (keys are masked).
- Optionally POST /assistant/prompt when PROMPT is set.

Environment knobs:
- MINI_ASSISTANT_SIDECAR_URL: override sidecar base (default http://127.0.0.1:8787)
- PROMPT: when set, send it with SELECTION (default empty) through the prompt command.
"""

from __future__ import annotations

import json
import os
import sys
import time

import requests


BASE_URL = os.environ.get("MINI_ASSISTANT_SIDECAR_URL", "http://127.0.0.1:8787").rstrip("/")


def _mask(value: str) -> str:
    if not value:
        return "<empty>"
    return f"{value[:4]}...{value[-2:]}" if len(value) > 8 else "***"


def check_health() -> None:
    resp = requests.get(f"{BASE_URL}/health", timeout=5)
    resp.raise_for_status()
    data = resp.json()
    print(f"status={data.get('status')} version={data.get('version')}")
    for capability, provider in (data.get("capabilities") or {}).items():
        print(f"  {capability}: {provider or 'unconfigured'}")


def show_settings() -> None:
    resp = requests.get(f"{BASE_URL}/settings", timeout=5)
    resp.raise_for_status()
    data = resp.json()
    print("\n[settings]")
    for slot in (1, 2):
        print(f"  slot {slot}: key={_mask(data.get(f'apiKey{slot}', ''))} base={data.get(f'apiBaseUrl{slot}') or '<empty>'}")
    print(f"  textProvider={data.get('textProvider')} speechProvider={data.get('speechProvider')}")
    print(f"  modelName={data.get('modelName') or '<default>'} maxTokens={data.get('maxTokens')}")


def run_prompt(prompt: str, selection: str) -> None:
    payload = {"prompt_text": prompt, "selected_text": selection}
    start = time.time()
    resp = requests.post(f"{BASE_URL}/assistant/prompt", json=payload, timeout=120)
    resp.raise_for_status()
    print(f"\n[prompt] answered in {time.time()-start:.2f}s")
    print(json.dumps(resp.json(), ensure_ascii=False, indent=2))


def main() -> None:
    check_health()
    show_settings()
    prompt = os.environ.get("PROMPT")
    if prompt:
        run_prompt(prompt, os.environ.get("SELECTION", ""))


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # noqa: BLE001
        print(f"[error] {exc}", file=sys.stderr)
        sys.exit(1)
