#!/usr/bin/env python3
"""
Seed script — creates a realistic dataset for exercising the engagement API.

Creates:
  • 10 users (written straight to the database; accounts are owned upstream)
  • A symmetric connection graph (each user connects to ~3 others)
  • 3 posts per user (30 total), via the API
  • Some comments and likes across posts, via the API

Run after docker compose up:
  python scripts/seed_data.py --api-url http://localhost:8000

The database is taken from the same settings the API uses (TIDB_* or
DATABASE_URL). All IDs are printed so you can use them in curl commands.
"""
import argparse
import asyncio
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass

from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from engagement.database import AsyncSessionLocal, engine, init_db
from engagement.models import Connection, User

BASE_USERS = [
    ("alice", "Alice Chen", "ML Engineer"),
    ("bob", "Bob Martinez", "Builder"),
    ("carol", "Carol Singh", "Data Scientist"),
    ("dave", "Dave Kim", "Product Designer"),
    ("eve", "Eve Johnson", "Platform Engineer"),
    ("frank", "Frank Williams", "Engineering Manager"),
    ("grace", "Grace Li", "Graph Researcher"),
    ("henry", "Henry Brown", "HPC Engineer"),
    ("iris", "Iris Davis", "SRE"),
    ("jack", "Jack Wilson", "ML Researcher"),
]

SAMPLE_POSTS = [
    "Just shipped a new feature to production 🚀 Zero downtime deploys are beautiful.",
    "Distributed SQL with TiDB — horizontal scaling without changing your SQL dialect.",
    "MinIO is remarkably S3-compatible. Switched with zero code changes.",
    "OpenTelemetry traces finally connected to Jaeger. The waterfall diagram is so satisfying.",
    "Prometheus metrics: the difference between knowing and guessing in production.",
    "Content moderation at scale is a harder problem than the ranking model.",
    "Grafana dashboards are the first thing I build for any new service.",
    "FastAPI async endpoints are a joy.",
    "A/B testing your ranking model: always ship with a control group.",
    "Building a recommendation system from scratch. The cold-start problem is real.",
]

SAMPLE_COMMENTS = [
    "Great point!",
    "Congrats on the launch 🎉",
    "Would love to hear more about this.",
    "We hit the same issue last quarter.",
    "Bookmarking this.",
]


@dataclass
class ApiClient:
    base_url: str

    def request(self, method: str, path: str, actor: str = "", data: dict = None) -> dict:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        if actor:
            headers["X-User-Id"] = actor
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for _ in range(retries):
        try:
            if client.request("GET", "/health").get("status") == "ok":
                print("  API is ready!\n")
                return
        except (urllib.error.URLError, ConnectionError):
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


async def seed_accounts() -> list[str]:
    """Upsert users and a symmetric connection graph."""
    await init_db()
    insert = sqlite_insert if engine.dialect.name == "sqlite" else mysql_insert

    user_ids = [username for username, _, _ in BASE_USERS]
    async with AsyncSessionLocal() as db:
        for username, name, headline in BASE_USERS:
            stmt = insert(User).values(
                user_id=username,
                username=username,
                name=name,
                email=f"{username}@example.com",
                headline=headline,
            )
            await db.execute(_ignore_duplicates(stmt))

        for user_id in user_ids:
            for other in random.sample([u for u in user_ids if u != user_id], k=3):
                for a, b in ((user_id, other), (other, user_id)):
                    stmt = insert(Connection).values(user_id=a, connection_id=b)
                    await db.execute(_ignore_duplicates(stmt))
        await db.commit()
    await engine.dispose()
    return user_ids


def _ignore_duplicates(stmt):
    if hasattr(stmt, "on_conflict_do_nothing"):
        return stmt.on_conflict_do_nothing()
    return stmt.prefix_with("IGNORE")


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Users and connections ─────────────────────────────────────────────
    print("Creating users and connections...")
    user_ids = asyncio.run(seed_accounts())
    print(f"  ✓ {len(user_ids)} users")

    # ── Posts ─────────────────────────────────────────────────────────────
    print("\nCreating posts...")
    post_ids: list[str] = []
    pool = random.sample(SAMPLE_POSTS, k=len(SAMPLE_POSTS)) * 3
    for i, user_id in enumerate(user_ids):
        for j in range(3):
            content = pool[(i * 3 + j) % len(pool)]
            pid = client.request("POST", "/posts", user_id, {"content": content}).get("post_id")
            if pid:
                post_ids.append(pid)
    print(f"  ✓ {len(post_ids)} posts created")

    # ── Comments ──────────────────────────────────────────────────────────
    print("\nAdding comments...")
    comments = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, 2)):
            body = {"content": random.choice(SAMPLE_COMMENTS)}
            if client.request("POST", f"/posts/{post_id}/comments", user_id, body):
                comments += 1
    print(f"  ✓ {comments} comments added")

    # ── Likes ─────────────────────────────────────────────────────────────
    print("\nAdding likes...")
    likes = 0
    for post_id in post_ids:
        for user_id in random.sample(user_ids, k=random.randint(0, 5)):
            if client.request("POST", f"/posts/{post_id}/like", user_id):
                likes += 1
    print(f"  ✓ {likes} likes added")

    # ── Summary ───────────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    u = user_ids[0]
    print(f"# Network feed for '{u}':")
    print(f"  curl -s -H 'X-User-Id: {u}' '{api_url}/posts/network' | python3 -m json.tool\n")
    print("# Create a new post:")
    print(f"  curl -s -X POST '{api_url}/posts' \\")
    print(f"    -H 'X-User-Id: {u}' -H 'Content-Type: application/json' \\")
    print("    -d '{\"content\": \"Hello world!\"}' | python3 -m json.tool\n")
    print("# Metrics: " + f"{api_url}/metrics")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the post engagement service")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
