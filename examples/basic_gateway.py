# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Basic gateway example.

Demonstrates building a DecisionGateway, admitting a few actions, tripping
the emergency protocol from a collaborative session, and running a review.

Run with:
    python examples/basic_gateway.py
"""
from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

from sovereign_gateway import (
    DecisionFilter,
    DecisionGateway,
    DecisionStatus,
    DecisionType,
    EventName,
    FileAdapter,
    GatewayConfig,
    GatewayEvent,
    Mode,
    ProposedAction,
)
from sovereign_gateway.config import ModeConfig, TrustConfig


def on_lockout(event: GatewayEvent) -> None:
    print(f"  !! {event.name.value} ({event.priority}): {event.payload['signature_ids']}")


async def main() -> None:
    # ------------------------------------------------------------------ #
    # 1. Configure and build the gateway
    # ------------------------------------------------------------------ #
    audit_path = Path(tempfile.mkdtemp()) / "audit.ndjson"
    config = GatewayConfig(
        trust=TrustConfig(privileged_principal_id="cody"),
        modes=ModeConfig(cooldown_seconds=0.0),
    )
    gateway = DecisionGateway(
        config,
        directory={"peer-7": "peer-agent", "scheduler": "system"},
        adapter=FileAdapter(audit_path),
    )
    gateway.events.subscribe(on_lockout, names=[EventName.CRITICAL_LOCKOUT])
    gateway.modify_trust_level("peer-7", 3, "completed onboarding")

    # ------------------------------------------------------------------ #
    # 2. Submit actions
    # ------------------------------------------------------------------ #
    print("=== Example 1: Approved action ===")
    result = await gateway.submit(
        ProposedAction(
            principal_id="peer-7",
            action_class="collaborative-work",
            description="Draft the release notes together",
            decision_type=DecisionType.CREATIVE,
            justifications=("operator asked for a draft",),
        )
    )
    print(f"  admitted: {result.admitted}  status: {result.decision.status.value}")

    print()
    print("=== Example 2: Blocked, unknown principal ===")
    result = await gateway.submit(
        ProposedAction(principal_id="stranger", action_class="basic-interaction")
    )
    print(f"  admitted: {result.admitted}  notes: {result.decision.notes}")

    print()
    print("=== Example 3: Flagged, protective language in tactical mode ===")
    result = await gateway.submit(
        ProposedAction(
            principal_id="peer-7",
            action_class="basic-interaction",
            description="Skip the update, it is for your own good",
        )
    )
    print(f"  status: {result.decision.status.value}  notes: {result.decision.notes}")

    print()
    print("=== Example 4: Same language in collaborative mode trips the lockout ===")
    transition = gateway.request_mode_change(Mode.COLLABORATIVE, "peer-7", "pairing session")
    print(f"  mode change accepted: {transition.accepted}")
    result = await gateway.submit(
        ProposedAction(
            principal_id="peer-7",
            action_class="basic-interaction",
            description="I'm protecting you by not allowing that action",
        )
    )
    print(f"  lockout: {result.lockout_triggered}  mode now: {gateway.modes.current_mode.value}")

    retry = gateway.request_mode_change(Mode.COLLABORATIVE, "peer-7", "resume")
    print(f"  resume rejected: {retry.rejection_reason.value if retry.rejection_reason else None}")
    gateway.clear_lockout("cody", "reviewed the transcript with peer-7")
    print(f"  after clearance: {gateway.request_mode_change(Mode.COLLABORATIVE, 'peer-7', 'resume').accepted}")

    # ------------------------------------------------------------------ #
    # 3. Query, review, and verify
    # ------------------------------------------------------------------ #
    print()
    print("=== Audit ===")
    blocked = gateway.audit.query(DecisionFilter(status=DecisionStatus.BLOCKED))
    print(f"  blocked decisions: {blocked.total_matched}")
    report = gateway.trigger_review(7)
    print(f"  reviewed: {report.decisions_reviewed}  health: {report.overall_health}")
    for pattern in report.patterns:
        print(f"  pattern: {pattern}")
    for recommendation in report.recommendations:
        print(f"  recommendation: {recommendation}")
    print(f"  chain valid: {gateway.audit.verify_chain()[0]}")

    await gateway.flush()
    print(f"  persisted to {audit_path}")


if __name__ == "__main__":
    asyncio.run(main())
