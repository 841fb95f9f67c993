"""Sanitize JSON payloads for safe sharing."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any

_SENSITIVE_KEYS = {
    "password",
    "token",
    "jwt",
    "authorization",
    "apikey",
    "api_key",
    "anon_key",
    "secret",
    "stripe_customer_id",
    "stripe_subscription_id",
    "customerid",
    "subscription",
}
_PII_KEYS = {
    "email",
    "phone",
    "ndis_number",
    "ndisnumber",
    "participant_name",
    "address",
    "postcode",
    "notes",
}
_NAME_KEYS = {
    "name",
}
_NON_SENSITIVE_KEYS = {
    "provider_name",
    "plan_name",
    "planname",
}
_TEXT_CONTAINER_KEYS = {
    "messages",
}


def mask_value(value: Any) -> Any:
    """Return a length-preserving mask for a value."""
    if value is None:
        return value
    if isinstance(value, bool):
        return value
    if isinstance(value, bytes):
        return "*" * len(value)
    if isinstance(value, str):
        return "*" * len(value)
    return "*" * len(str(value))


def mask_email(email: str) -> str:
    """Keep the first character and the domain of an email address."""
    if not isinstance(email, str) or "@" not in email:
        return mask_value(email)
    local, _, domain = email.partition("@")
    if not local:
        return f"@{domain}"
    return f"{local[0]}{'*' * (len(local) - 1)}@{domain}"


def mask_name(name: str) -> str:
    """Keep initials of a person's name."""
    if not isinstance(name, str):
        return mask_value(name)
    return " ".join(
        f"{part[0]}{'*' * (len(part) - 1)}" if part else part for part in name.split(" ")
    )


def _mask_container(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _mask_container(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_mask_container(item) for item in value]
    return mask_value(value)


def _mask_value_for_key(key: str, value: Any, keep_names: bool) -> Any:
    key_lower = key.lower()
    if key_lower in _NON_SENSITIVE_KEYS:
        return value
    if any(fragment in key_lower for fragment in _SENSITIVE_KEYS):
        return _mask_container(value)
    if "email" in key_lower and isinstance(value, str):
        return mask_email(value)
    if any(fragment in key_lower for fragment in _PII_KEYS):
        return _mask_container(value)
    if key_lower in _NAME_KEYS and isinstance(value, str) and not keep_names:
        return mask_name(value)
    return value


def _sanitize_message(value: Any, keep_names: bool) -> Any:
    if not isinstance(value, dict):
        return sanitize_data(value, keep_names=keep_names)
    sanitized = {
        str(k): sanitize_data(v, key=str(k), keep_names=keep_names) for k, v in value.items()
    }
    if isinstance(sanitized.get("text"), str):
        sanitized["text"] = mask_value(sanitized["text"])
    return sanitized


def sanitize_data(value: Any, *, key: str | None = None, keep_names: bool = False) -> Any:
    """Return a sanitized representation of a value."""
    if key is not None:
        masked = _mask_value_for_key(key, value, keep_names)
        if masked is not value:
            return masked
    if isinstance(value, dict):
        return {
            str(k): sanitize_data(v, key=str(k), keep_names=keep_names) for k, v in value.items()
        }
    if isinstance(value, list):
        if key is not None and key.lower() in _TEXT_CONTAINER_KEYS:
            return [_sanitize_message(item, keep_names) for item in value]
        return [sanitize_data(item, key=key, keep_names=keep_names) for item in value]
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def sanitize_file(path: Path, *, keep_names: bool = False) -> Any:
    """Load and sanitize a JSON file such as a dataset export or a debug dump."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path}: invalid JSON at line {exc.lineno}") from exc
    return sanitize_data(data, keep_names=keep_names)


def _write_output(text: str, target: Path | None) -> None:
    if target is None:
        print(text)
    else:
        target.write_text(f"{text}\n", encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Mask contact details, identifiers and secrets in a JSON file."
    )
    parser.add_argument("input", type=Path, help="JSON file to sanitize.")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--output", type=Path, help="Write to this file instead of stdout.")
    target.add_argument("--in-place", action="store_true", help="Overwrite the input file.")
    parser.add_argument(
        "--keep-names",
        action="store_true",
        help="Leave `name` fields readable.",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indent (default: 2).")
    args = parser.parse_args(argv)

    if not args.input.is_file():
        print(f"File not found: {args.input}", file=sys.stderr)
        return 2
    try:
        sanitized = sanitize_file(args.input, keep_names=args.keep_names)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    text = json.dumps(sanitized, indent=args.indent, sort_keys=True, ensure_ascii=False)
    _write_output(text, args.input if args.in_place else args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
