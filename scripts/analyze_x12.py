#!/usr/bin/env python3
"""Analyze an X12 file: envelope summary, validation, 997 reply and canonical output."""
import os
import sys
import json
import argparse
from collections import Counter
from typing import List, Optional

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from x12engine.config.settings import get_settings
from x12engine.models.envelope import ReceiverIdentity, SenderIdentity
from x12engine.models.transaction_sets import UnsupportedTransactionSet
from x12engine.services.x12.service import X12Service
from x12engine.utils.errors import X12EngineError
from x12engine.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def read_file(filepath: str) -> str:
    """
    Read an X12 file.

    Raises:
        FileNotFoundError: If the file does not exist
        IsADirectoryError: If the path is a directory
        ValueError: If the file is empty
    """
    if not os.path.exists(filepath):
        logger.error("File not found", filepath=filepath)
        raise FileNotFoundError(f"File not found: {filepath}")
    if os.path.isdir(filepath):
        logger.error("Path is a directory, not a file", filepath=filepath)
        raise IsADirectoryError(f"Path is a directory, not a file: {filepath}")

    with open(filepath, "r", encoding="utf-8", errors="ignore") as f:
        content = f.read()

    if not content.strip():
        logger.error("File is empty", filepath=filepath)
        raise ValueError(f"File is empty: {filepath}")
    return content


def analyze_file(
    filepath: str,
    validate: bool = False,
    ack: bool = False,
    canonical: bool = False,
    sender_id: str = "RECEIVER",
    receiver_id: Optional[str] = None,
    service: Optional[X12Service] = None,
) -> dict:
    """
    Analyze an X12 file and return a JSON-serializable summary.

    Args:
        filepath: Path to the X12 file
        validate: Run the rule-table validator
        ack: Include a 997 reply
        canonical: Include canonical objects for supported sets
        sender_id: ISA06 of the 997 reply
        receiver_id: ISA08 of the 997 reply; defaults to the inbound sender
        service: Service to use; a default one is built when omitted

    Returns:
        Dictionary with keys:
        - success, errors, warnings
        - interchange: control number, version, sender, receiver
        - transaction_sets: code, control number and segment count per set
        - segment_frequency: segment id counts across all sets
        - validation, acknowledgment, canonical when requested
    """
    service = service or X12Service()
    content = read_file(filepath)
    result = service.parse_document(content)

    summary = {
        "file": os.path.basename(filepath),
        "success": result.success,
        "errors": [issue.model_dump(mode="json", exclude_none=True) for issue in result.errors],
        "warnings": [issue.model_dump(mode="json", exclude_none=True) for issue in result.warnings],
    }
    interchange = result.interchange
    if interchange is None:
        return summary

    header = interchange.header
    summary["interchange"] = {
        "control_number": header.control_number,
        "version": header.version,
        "sender": header.sender_id.strip(),
        "receiver": header.receiver_id.strip(),
        "usage_indicator": header.usage_indicator,
        "functional_groups": len(interchange.functional_groups),
    }

    frequency: Counter = Counter()
    transaction_sets = []
    for group in interchange.functional_groups:
        for transaction_set in group.transaction_sets:
            frequency.update(segment.segment_id for segment in transaction_set.segments)
            transaction_sets.append({
                "functional_code": group.header.functional_code,
                "group_control_number": group.header.control_number,
                "code": transaction_set.header.transaction_set_code,
                "control_number": transaction_set.header.control_number,
                "segments": len(transaction_set.segments) + 2,
                "supported": service.is_transaction_set_supported(transaction_set.header.transaction_set_code),
            })
    summary["transaction_sets"] = transaction_sets
    summary["segment_frequency"] = dict(frequency.most_common())

    if validate:
        issues = service.validate_interchange(interchange)
        summary["validation"] = [issue.model_dump(mode="json", exclude_none=True) for issue in issues]

    if ack:
        summary["acknowledgment"] = service.generate_997_for_document(
            content,
            SenderIdentity(sender_id=sender_id),
            ReceiverIdentity(
                receiver_id=receiver_id or header.sender_id.strip(),
                receiver_id_qualifier=header.sender_id_qualifier,
            ),
        )

    if canonical:
        documents = []
        for typed in service.parse_and_extract_transaction_sets(content):
            if typed.data is None or isinstance(typed.data, UnsupportedTransactionSet):
                continue
            if typed.data.transaction_set_code == "997":
                continue
            document = service.map_to_canonical(typed.data)
            documents.append({
                "code": typed.data.transaction_set_code,
                "document": document.model_dump(mode="json", exclude_none=True),
            })
        summary["canonical"] = documents

    return summary


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Analyze an X12 EDI file")
    parser.add_argument("file", help="X12 file path")
    parser.add_argument("--validate", action="store_true", help="Run rule-table validation")
    parser.add_argument("--ack", action="store_true", help="Include a 997 acknowledgment")
    parser.add_argument("--canonical", action="store_true", help="Include canonical business objects")
    parser.add_argument("--sender-id", default="RECEIVER", help="ISA06 for the 997 reply")
    parser.add_argument("--receiver-id", help="ISA08 for the 997 reply (default: inbound sender)")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level (default: X12_LOG_LEVEL)")
    parser.add_argument(
        "--log-format",
        default=settings.log_format,
        choices=["json", "console"],
        help="Log format (default: X12_LOG_FORMAT)",
    )

    args = parser.parse_args(argv)
    configure_logging(log_level=args.log_level, log_format=args.log_format)

    try:
        summary = analyze_file(
            args.file,
            validate=args.validate,
            ack=args.ack,
            canonical=args.canonical,
            sender_id=args.sender_id,
            receiver_id=args.receiver_id,
        )
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except X12EngineError as e:
        logger.error("X12 processing failed", **e.to_dict())
        print(f"Error: {e.message}", file=sys.stderr)
        return 2

    print(json.dumps(summary, indent=2))
    return 0 if summary["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
