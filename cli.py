"""
CLI for the Sales Operations backend.
Run an order sync, inspect stored orders, or start the server from command line.
"""

import sys
import argparse
from pathlib import Path

# Add project to path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


def cmd_sync(args):
    """Run a Yampi order sync."""
    from app.core.logging import setup_logging_from_config
    from app.orders.client import OrderFilter, ProviderError
    from app.orders.service import OrderSyncService

    setup_logging_from_config()

    filters = OrderFilter(
        statuses=args.status or [],
        payment_methods=args.payment_method or [],
        date_from=args.date_from,
        date_to=args.date_to,
        q=args.q
    )

    print("[SYNC] Fetching orders from Yampi...")

    service = OrderSyncService()
    try:
        result = service.sync(filters)
    except ProviderError as e:
        print(f"[ERROR] Sync failed: {e}")
        return 1

    print(f"\n[OK] Sync complete!")
    print(f"   Orders fetched: {result.total}")
    print(f"   Created: {result.created}")
    print(f"   Updated: {result.updated}")
    print(f"   Errors: {result.errors}")
    return 0


def cmd_orders(args):
    """List stored orders."""
    from app.core.logging import setup_logging_from_config
    from app.core.database import get_database

    setup_logging_from_config()
    db = get_database()

    filters = dict(
        search=args.q,
        payment_method=args.payment_method,
        status=args.status,
        date_from=args.date_from,
        date_to=args.date_to
    )
    rows = db.get_orders(limit=args.limit, **filters)
    total = db.count_orders(**filters)

    print(f"[ORDERS] Showing {len(rows)} of {total}")
    for row in rows:
        number = row['yampi_order_number'] or row['id']
        sale_day = (row['data_venda'] or '')[:10]
        print(
            f"   #{number:<8} {sale_day:<10} {(row['cliente'] or '-')[:30]:<30} "
            f"{row['modelo'] or '-':<12} {row['plano'] or '-':<12} "
            f"{row['status'] or '-':<14} {row['valor_liquido'] or 0:>10.2f}"
        )
    return 0


def cmd_statuses(args):
    """Show the Yampi order status catalog."""
    from app.core.logging import setup_logging_from_config
    from app.orders.client import create_client_from_config

    setup_logging_from_config()
    client = create_client_from_config()
    if not client:
        print("[ERROR] Yampi not configured (see config.yaml or YAMPI_* variables)")
        return 1

    statuses = client.fetch_order_statuses()
    print(f"[STATUSES] {len(statuses)} statuses")
    for status in statuses:
        print(f"   {status.get('id'):>4}  {status.get('alias') or '-':<20} {status.get('name')}")
    return 0


def cmd_serve(args):
    """Start the API server."""
    import uvicorn

    print(f"[SERVER] Starting API server on http://{args.host}:{args.port}")
    print(f"   Docs: http://{args.host}:{args.port}/docs")

    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload
    )
    return 0


def _add_filter_arguments(parser, multi: bool):
    action = "append" if multi else "store"
    parser.add_argument("--q", type=str, default=None, help="Free-text search")
    parser.add_argument("--status", type=str, action=action, default=None, help="Status filter")
    parser.add_argument("--payment-method", type=str, action=action, default=None, help="Payment method filter")
    parser.add_argument("--date-from", type=str, default=None, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--date-to", type=str, default=None, help="End date (YYYY-MM-DD)")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Sales Operations CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py sync
  python cli.py sync --status 4 --date-from 2024-01-01 --date-to 2024-01-31
  python cli.py orders --q maria --limit 20
  python cli.py serve
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Sync command
    sync_parser = subparsers.add_parser("sync", help="Sync orders from Yampi")
    _add_filter_arguments(sync_parser, multi=True)

    # Orders command
    orders_parser = subparsers.add_parser("orders", help="List stored orders")
    _add_filter_arguments(orders_parser, multi=False)
    orders_parser.add_argument("--limit", type=int, default=50, help="Max orders to show")

    # Statuses command
    subparsers.add_parser("statuses", help="Show Yampi order statuses")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start API server")
    serve_parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args(argv)

    commands = {
        "sync": cmd_sync,
        "orders": cmd_orders,
        "statuses": cmd_statuses,
        "serve": cmd_serve,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
