"""
Basic accessctl usage example.

This example demonstrates:
- Loading rules from a policy file and adding native predicates
- Resource- and field-level decisions
- Shipping every decision to the configured audit sink
"""

import asyncio
import logging
import os

from accessctl import (
    AuditConfig,
    AuditTrail,
    PermissionRule,
    RecordContext,
    RuleStore,
    UserContext,
    evaluate_access,
)


POLICY_FILE = os.path.join(os.path.dirname(__file__), "policy.yaml")


async def basic_example():
    """Demonstrate basic accessctl usage"""
    print("Basic accessctl Example")
    print("=" * 30)

    # 1. Rules: stored policy plus a native predicate
    rules = RuleStore(list(RuleStore.from_file(POLICY_FILE)) + [
        PermissionRule(
            resource="users",
            action="invite",
            condition=lambda ctx, record: ctx.role == "admin",
        ),
    ])
    print(f"✓ Loaded {len(rules)} rules")

    # 2. Audit sink selected from ACCESSCTL_AUDIT_* (console by default)
    trail = AuditTrail.from_config(AuditConfig.from_env())

    context = UserContext(user_id="u1", role="member", tenant_id="t1", attributes={"region": "eu"})
    requests = [
        ("orders", "read", RecordContext(id="o1", attributes={"tenantId": "t1"}), "total"),
        ("orders", "read", RecordContext(id="o1", attributes={"tenantId": "t1"}), "cost"),
        ("orders", "read", RecordContext(id="o2", attributes={"tenantId": "t2"}), None),
        ("orders", "update", RecordContext(id="o1", attributes={"tenantId": "t1", "createdBy": "u1"}), "status"),
        ("invoices", "read", RecordContext(id="i1", attributes={"region": "eu"}), None),
        ("users", "invite", None, None),
    ]

    try:
        for resource, action, record, field in requests:
            result = evaluate_access(rules, context, resource, action, record, field)
            trail.record(resource, action, context, result, record, field)

            target = f"{resource}.{field}" if field else resource
            status = "✓ allowed" if result.can else f"✗ denied ({result.reason})"
            print(f"{action:>7} {target:<16} {status}")
    finally:
        await trail.close()


def main():
    logging.basicConfig(level=logging.INFO)
    asyncio.run(basic_example())


if __name__ == "__main__":
    main()
