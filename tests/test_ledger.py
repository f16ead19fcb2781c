"""Tests for the ledger service: balances, validation and the person lifecycle."""

import asyncio
import random
import re

import pytest

from money_manager.ledger import (
    compute_balance,
    compute_totals,
    generate_id,
    summarize_person,
)
from money_manager.models.backup import Snapshot
from money_manager.models.ledger import Person, Transaction, TransactionType
from money_manager.services.storage import StorageIOError
from money_manager.validation import LedgerValidationError


def run(coro):
    return asyncio.run(coro)


def txn(txn_id, amount, type, date="2024-01-01T00:00:00.000Z", person_id="p1"):
    return Transaction(id=txn_id, person_id=person_id, amount=amount, type=type, date=date)


class TestBalance:
    """Tests for balance aggregation."""

    def test_empty_balance_is_zero(self):
        assert compute_balance([]) == 0

    def test_balance_is_credits_minus_debits(self):
        transactions = [
            txn("t1", 100, "credit"),
            txn("t2", 30, "debit"),
            txn("t3", 12.5, "credit"),
        ]
        assert compute_balance(transactions) == pytest.approx(82.5)

    def test_balance_matches_sums_for_random_sequences(self):
        rng = random.Random(7)
        for _ in range(50):
            transactions = [
                txn(f"t{i}", round(rng.uniform(0, 1000), 2), rng.choice(["credit", "debit"]))
                for i in range(rng.randint(0, 20))
            ]
            credits = sum(t.amount for t in transactions if t.type == TransactionType.CREDIT)
            debits = sum(t.amount for t in transactions if t.type == TransactionType.DEBIT)
            assert compute_balance(transactions) == pytest.approx(credits - debits)

    def test_summarize_person(self):
        person = Person(id="p1", name="Alice")
        summary = summarize_person(person, [
            txn("t1", 100, "credit", date="2024-01-05T00:00:00.000Z"),
            txn("t2", 30, "debit", date="2024-02-10"),
            txn("t3", 5, "debit", date="2024-01-20T12:00:00.000Z"),
        ])
        assert summary.given_total == 100
        assert summary.taken_total == 35
        assert summary.balance == 65
        assert summary.last_transaction_date == "2024-02-10"
        assert summary.transaction_count == 3

    def test_summarize_person_without_transactions(self):
        summary = summarize_person(Person(id="p1", name="Alice"), [])
        assert summary.balance == 0
        assert summary.last_transaction_date is None
        assert summary.transaction_count == 0

    def test_compute_totals(self):
        alice = summarize_person(Person(id="p1", name="Alice"), [txn("t1", 100, "credit")])
        bob = summarize_person(
            Person(id="p2", name="Bob"),
            [txn("t2", 40, "debit", person_id="p2")],
        )
        totals = compute_totals([alice, bob])
        assert totals.total_given == 100
        assert totals.total_taken == 40
        assert totals.total_balance == 60
        assert totals.person_count == 2


class TestGenerateId:
    """Tests for id generation."""

    def test_format(self):
        assert re.fullmatch(r"\d{13}[0-9a-z]{9}", generate_id())

    def test_unique(self):
        ids = {generate_id() for _ in range(1000)}
        assert len(ids) == 1000


class TestLedgerService:
    """Tests for the ledger service against a real database."""

    def test_alice_scenario(self, ledger):
        """Add a person, lend, borrow back, then delete everything."""
        async def scenario():
            alice = await ledger.create_person("Alice")
            assert alice.id
            assert (await ledger.get_person_summary(alice)).balance == 0

            await ledger.create_transaction(alice.id, "100", "credit")
            summary = await ledger.get_person_summary(alice)
            assert summary.balance == 100.00
            assert summary.given_total == 100
            assert summary.taken_total == 0

            await ledger.create_transaction(alice.id, 30, TransactionType.DEBIT)
            summary = await ledger.get_person_summary(alice)
            assert summary.balance == 70.00

            assert await ledger.delete_person(alice.id) is True
            remaining = await ledger.list_transactions_for_person(alice.id)
            await ledger.close()
            return remaining

        assert run(scenario()) == []

    def test_round_trip_through_storage(self, ledger):
        async def scenario():
            person = Person(
                id="p1",
                name="Alice",
                phone="555",
                email="alice@example.com",
                image_uri="file:///alice.jpg",
            )
            transaction = Transaction(
                id="t1",
                person_id="p1",
                amount=12.75,
                type="debit",
                description="Taxi",
                date="2024-06-01T08:30:00.000Z",
            )
            await ledger.save_person(person)
            await ledger.save_transaction(transaction)
            loaded = (await ledger.list_persons(), await ledger.list_transactions())
            await ledger.close()
            return person, transaction, loaded

        person, transaction, (persons, transactions) = run(scenario())
        assert persons == [person]
        assert transactions == [transaction]

    def test_saving_same_id_twice_keeps_latest(self, ledger):
        async def scenario():
            await ledger.save_person(Person(id="p1", name="Alice"))
            await ledger.save_person(Person(id="p1", name="Alice Smith"))
            persons = await ledger.list_persons()
            await ledger.close()
            return persons

        persons = run(scenario())
        assert [p.name for p in persons] == ["Alice Smith"]

    def test_empty_name_rejected_before_storage(self, ledger):
        async def scenario():
            with pytest.raises(LedgerValidationError) as exc_info:
                await ledger.create_person("  ")
            persons = await ledger.list_persons()
            await ledger.close()
            return exc_info.value, persons

        error, persons = run(scenario())
        assert error.issues[0].field == "name"
        assert persons == []

    def test_non_numeric_amount_rejected(self, ledger):
        async def scenario():
            alice = await ledger.create_person("Alice")
            with pytest.raises(LedgerValidationError, match="Amount must be a number"):
                await ledger.create_transaction(alice.id, "12a", "credit")
            transactions = await ledger.list_transactions()
            await ledger.close()
            return transactions

        assert run(scenario()) == []

    def test_negative_amount_rejected_on_save(self, ledger):
        async def scenario():
            await ledger.save_person(Person(id="p1", name="Alice"))
            with pytest.raises(LedgerValidationError):
                await ledger.save_transaction(txn("t1", -5, "credit"))
            await ledger.close()

        run(scenario())

    def test_transaction_for_unknown_person_propagates(self, ledger):
        async def scenario():
            with pytest.raises(StorageIOError):
                await ledger.save_transaction(txn("t1", 5, "credit", person_id="ghost"))
            await ledger.close()

        run(scenario())

    def test_create_transaction_keeps_given_date(self, ledger):
        async def scenario():
            alice = await ledger.create_person("Alice")
            created = await ledger.create_transaction(
                alice.id, "15", "debit", description="  Coffee ", date="2024-02-29",
            )
            await ledger.close()
            return created

        created = run(scenario())
        assert created.date == "2024-02-29"
        assert created.description == "Coffee"
        assert created.amount == 15.0

    def test_person_summaries_and_totals(self, ledger):
        async def scenario():
            bob = await ledger.create_person("Bob")
            alice = await ledger.create_person("Alice")
            await ledger.create_transaction(alice.id, 50, "credit")
            await ledger.create_transaction(bob.id, 20, "debit")
            summaries = await ledger.list_person_summaries()
            totals = await ledger.get_totals()
            await ledger.close()
            return summaries, totals

        summaries, totals = run(scenario())
        assert [s.person.name for s in summaries] == ["Alice", "Bob"]
        assert [s.balance for s in summaries] == [50, -20]
        assert totals.total_balance == 30

    def test_clear_all(self, ledger):
        async def scenario():
            alice = await ledger.create_person("Alice")
            await ledger.create_transaction(alice.id, 10, "credit")
            await ledger.clear_all()
            result = (await ledger.list_persons(), await ledger.list_transactions())
            await ledger.close()
            return result

        assert run(scenario()) == ([], [])

    def test_import_snapshot_replaces_contents(self, ledger):
        async def scenario():
            await ledger.create_person("Old Person")
            p1 = Person(id="p1", name="Alice")
            t1 = Transaction(id="t1", person_id="p1", amount=100, type="credit")
            await ledger.import_snapshot(Snapshot(persons=[p1], transactions=[t1]))
            exported = await ledger.export_snapshot()
            await ledger.close()
            return p1, t1, exported

        p1, t1, exported = run(scenario())
        assert exported.persons == [p1]
        assert exported.transactions == [t1]

    def test_import_snapshot_rejects_invalid_records(self, ledger):
        async def scenario():
            old = await ledger.create_person("Old Person")
            bad = Snapshot(
                persons=[Person(id="p1", name="Alice")],
                transactions=[Transaction(id="t1", person_id="p1", amount=-100, type="credit")],
            )
            with pytest.raises(LedgerValidationError, match="negative"):
                await ledger.import_snapshot(bad)
            persons = await ledger.list_persons()
            await ledger.close()
            return old, persons

        old, persons = run(scenario())
        assert persons == [old]

    def test_very_long_name_is_saved_without_error(self, ledger):
        async def scenario():
            person = await ledger.create_person("A" * 600)
            persons = await ledger.list_persons()
            await ledger.close()
            return person, persons

        person, persons = run(scenario())
        assert persons == [person]
        assert len(person.name) == 600
