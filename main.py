import argparse
import time

from core.app_context import build_context
from core.config import AUTH_TOKEN, ORDER_WS_URL, PRINCIPAL_ID, PRINCIPAL_TYPE
from core.transport import ROOM_JOIN
from init_db import init_db
from models.event import EVENT_TYPES

STATUS_CHECK_INTERVAL = 5


def print_event(event):
    details = event.status or event.delivery_partner_id or ""
    print(f"📦 {event.timestamp:%H:%M:%S} {event.type:<22} #{event.order_id} {details}")


def print_active_orders(ctx):
    active = ctx.orders.view(bucket="active")
    print(f"--- {len(active)} active order(s) ---")
    for order in active:
        print(f"  #{order.id:<10} {order.status.value:<17} {order.restaurant_name:<20} ₹{order.total:.2f}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Follow live order events for one session")
    parser.add_argument("--url", default=ORDER_WS_URL)
    parser.add_argument("--token", default=AUTH_TOKEN)
    parser.add_argument("--principal-id", default=PRINCIPAL_ID)
    parser.add_argument("--principal-type", default=PRINCIPAL_TYPE, choices=sorted(ROOM_JOIN))
    parser.add_argument("--order", action="append", default=[], help="order id to follow (repeatable)")
    args = parser.parse_args(argv)

    init_db()
    ctx = build_context(principal_type=args.principal_type, principal_id=args.principal_id)
    token = args.token or ctx.auth.token
    principal_id = args.principal_id or ctx.auth.principal_id

    listeners = [ctx.transport.on(event_type, print_event) for event_type in EVENT_TYPES]
    ctx.sync.start(args.url, token, principal_id, args.principal_type)
    followed = [ctx.sync.track_order(order_id) for order_id in args.order]
    print_active_orders(ctx)

    was_connected = ctx.transport.is_connected()
    try:
        while True:
            time.sleep(STATUS_CHECK_INTERVAL)
            connected = ctx.transport.is_connected()
            if connected != was_connected:
                print("✅ Live updates on" if connected else "⚠️ Live updates paused (disconnected)")
                was_connected = connected
            for note in reversed(ctx.notifications.items()):
                print(f"[{note.level.upper()}] {note.message} {note.description}")
            ctx.notifications.clear()
            if connected:
                print_active_orders(ctx)
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        for scope in followed:
            scope.close()
        for dispose in listeners:
            dispose()
        ctx.sync.stop()


if __name__ == "__main__":
    main()
