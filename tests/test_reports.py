from repair_desk.core.reports import client_history, dashboard_summary
from repair_desk.models import Client, Order, Product, Ticket


class TestReports:
    """Unit tests for dashboard figures"""

    def test_dashboard_summary(self):
        """Test counts and earnings"""
        tickets = [
            Ticket(status="pending", cost=50, technician_id="t1"),
            Ticket(status="completed", cost=120, technician_id="t1"),
            Ticket(status="in-progress", cost=30, technician_id="t2"),
        ]
        products = [Product(name="Cable", stock=2), Product(name="Screen", stock=9)]
        clients = [Client(name="Jane Doe")]

        summary = dashboard_summary(tickets, products, clients)

        assert summary["pending_tickets"] == 1
        assert summary["in_progress_tickets"] == 1
        assert summary["completed_tickets"] == 1
        assert summary["total_earnings"] == 200
        assert summary["low_stock_products"] == 1
        assert summary["total_clients"] == 1

        own = dashboard_summary(tickets, products, clients, technician_id="t1")
        assert own["total_earnings"] == 170
        assert own["in_progress_tickets"] == 0

    def test_client_history(self):
        """Test a client's tickets, orders and spend"""
        tickets = [Ticket(client_id="c1", cost=80), Ticket(client_id="c2", cost=10)]
        orders = [Order(client_id="c1", total=25)]

        history = client_history("c1", tickets, orders)

        assert len(history["tickets"]) == 1
        assert len(history["orders"]) == 1
        assert history["total_spent"] == 105
