"""
Basic claimgate usage example.

This example demonstrates the fundamental claimgate operations:
- Creating an evaluation environment
- Signing principals in with explicit claims
- Executing operations against the admin_docs policy
- Granting a claim out of band and signing in again
"""

import asyncio

from claimgate import Operation, evaluation_environment


async def basic_example():
    """Demonstrate basic claimgate usage"""
    print("Basic claimgate Example")
    print("=" * 30)

    # 1. Create an isolated environment with the packaged rules
    async with evaluation_environment() as env:
        print(f"✓ Created environment {env.environment_id}")

        # 2. Admin creates a document
        admin = await env.session("adminUid", True, {'admin': True})
        result = await env.execute(admin, Operation.create("admin_docs/doc1", {
            'title': 'Admin Doc',
            'content': 'Secret',
            'createdBy': 'adminUid',
        }))
        print(f"✓ Admin create: {result.describe()}")

        # 3. A plain user cannot
        user = await env.session("userUid", True, {})
        result = await env.execute(user, Operation.create("admin_docs/doc2", {'title': 'User Doc'}))
        print(f"✓ User create: {result.describe()}")

        # 4. But can read
        result = await env.execute(user, Operation.read("admin_docs/doc1"))
        print(f"✓ User read: {result.describe()}")

        # 5. Anonymous access is rejected
        anon = await env.session("anon", False)
        result = await env.execute(anon, Operation.read("admin_docs/doc1"))
        print(f"✓ Anonymous read: {result.describe()}")

        # 6. Grant the admin claim to a directory user, then sign in
        await env.identity.create_user(key="e2eAdmin", email="e2e-admin@example.com")
        grant = await env.identity.set_claim("e2e-admin@example.com", "admin", True)
        print(f"✓ Claim grant: {grant.describe()}")

        session = await env.session_for_user("e2eAdmin")
        result = await env.execute(session, Operation.create("admin_docs/admin_doc_e2e", {'title': 'E2E'}))
        print(f"✓ Granted admin create: {result.describe()}")

        events = await env.decision_log.get_events()
        print(f"✓ {len(events)} decisions logged")

    print("✓ Environment destroyed")
    print("\nBasic example completed successfully!")


if __name__ == "__main__":
    asyncio.run(basic_example())
