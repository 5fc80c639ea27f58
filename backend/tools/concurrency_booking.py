import argparse
import concurrent.futures
import json
import os

import requests

BASE = os.environ.get("JETSKI_BASE", "http://127.0.0.1:8000")


def book_task(i, tenant, payload):
    headers = {"Content-Type": "application/json", "X-Tenant-Id": tenant}
    try:
        r = requests.post(f"{BASE}/api/reservations", json=payload, headers=headers, timeout=20)
        return (i, "book", r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "book", "ERR", str(e))


def deposit_task(i, tenant, reservation_id, amount):
    headers = {"Content-Type": "application/json", "X-Tenant-Id": tenant}
    try:
        r = requests.post(
            f"{BASE}/api/reservations/{reservation_id}/deposit",
            json={"amount": amount},
            headers=headers,
            timeout=20,
        )
        return (i, "deposit", r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "deposit", "ERR", str(e))


def summarize(results):
    for r in results:
        print(r)
    ok = [r for r in results if r[2] == 200]
    print(f"Accepted: {len(ok)}  Rejected: {len(results) - len(ok)}")
    return ok


def run_guaranteed_concurrent(workers, tenant, payload):
    """Fire `workers` deposit-backed bookings for the same window; accepted must not exceed units."""
    print(f"Running guaranteed booking test: workers={workers}, tenant={tenant}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(book_task, i, tenant, payload) for i in range(workers)]
        results = [f.result() for f in futures]
    ok = summarize(results)
    ids = [json.loads(r[3]).get("id") for r in ok]
    print("Unique reservation ids:", set(ids))


def run_deposit_race(workers, tenant, payload, amount):
    """Create `workers` overbooked reservations, then upgrade them all at once."""
    print(f"Running deposit race: workers={workers}, tenant={tenant}")
    payload = dict(payload, deposit_paid=False, deposit_amount=None)
    created = [book_task(i, tenant, payload) for i in range(workers)]
    ids = [json.loads(r[3]).get("id") for r in created if r[2] == 200]
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(deposit_task, i, tenant, rid, amount) for i, rid in enumerate(ids)]
        results = [f.result() for f in futures]
    summarize(results)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrency test tool (guaranteed bookings or deposit upgrades).")
    sub = parser.add_subparsers(dest="mode", required=True)

    for name in ("book", "deposits"):
        p = sub.add_parser(name)
        p.add_argument("--tenant", default="marina-1")
        p.add_argument("--model", type=int, default=1)
        p.add_argument("--customer", type=int, default=1)
        p.add_argument("--start", default="2030-01-05T10:00:00")
        p.add_argument("--end", default="2030-01-05T12:00:00")
        p.add_argument("--workers", type=int, default=8)
        p.add_argument("--amount", default="50.00")

    args = parser.parse_args()
    booking = {
        "model_id": args.model,
        "customer_id": args.customer,
        "start_at": args.start,
        "end_at": args.end,
        "deposit_paid": True,
        "deposit_amount": args.amount,
    }

    if args.mode == "book":
        run_guaranteed_concurrent(args.workers, args.tenant, booking)
    elif args.mode == "deposits":
        run_deposit_race(args.workers, args.tenant, booking, args.amount)
