"""
Integration tests: commitment -> factory -> auction -> claims.

Runs full distributions against the in-memory reserve auction house.
"""

import pytest

from fundsplit.core.assets import CollectibleRegistry, TokenLedger
from fundsplit.core.auction import AuctionPhase, ReserveAuctionHouse
from fundsplit.core.distribution import build_distribution, dust
from fundsplit.core.errors import (
    AlreadyClaimed,
    AuctionAlreadyCreated,
    AuctionClosed,
    AuctionServiceError,
    InvalidProof,
    NotAuthorized,
)
from fundsplit.core.factory import InstanceFactory
from fundsplit.core.state import Journal
from fundsplit.crypto import ZERO_ADDRESS, keccak256


def addr(n: int) -> bytes:
    return bytes([n]) * 20


OWNER = addr(0xA0)
CURATOR = addr(0xA1)
BIDDER_A = addr(0xB0)
BIDDER_B = addr(0xB1)
STRANGER = addr(0xC0)
DAY = 24 * 3600
START = 1_700_000_000

# Uneven split over ten beneficiaries (sums to 100%)
SHARES = [
    30_000_000, 20_000_000, 15_000_000, 10_000_000, 8_000_000,
    6_000_000, 5_000_000, 3_333_333, 1_666_667, 1_000_000,
]


class Clock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def world():
    journal = Journal()
    clock = Clock()
    currency = TokenLedger(journal, "WETH")
    collectibles = CollectibleRegistry(journal, "Art")
    house = ReserveAuctionHouse(journal, clock=clock)
    factory = InstanceFactory(keccak256(b"factory")[-20:], house, journal)

    allocations = [(addr(i + 1), share) for i, share in enumerate(SHARES)]
    commitment = build_distribution(allocations)
    instance = factory.get_instance(factory.create_instance(commitment.root_bytes, currency, OWNER))
    collectibles.mint(instance.address, 1)

    for bidder in (BIDDER_A, BIDDER_B):
        currency.mint(bidder, 10**24)

    return {
        "journal": journal,
        "clock": clock,
        "currency": currency,
        "collectibles": collectibles,
        "house": house,
        "factory": factory,
        "commitment": commitment,
        "instance": instance,
    }


def sell(world, bids, curator=ZERO_ADDRESS, fee=0, reserve=1000):
    """Create the auction, place ``bids`` and settle it."""
    instance, house, clock = world["instance"], world["house"], world["clock"]
    auction_id = instance.create_auction(OWNER, 1, world["collectibles"], DAY, reserve, curator, fee)
    if curator != ZERO_ADDRESS:
        house.set_auction_approval(auction_id, True, curator)
    for bidder, amount in bids:
        house.create_bid(auction_id, amount, bidder)
    clock.now += DAY + 1
    return instance.end_auction(STRANGER)


class TestFullDistribution:
    """End-to-end distributions."""

    def test_proceeds_distributed_to_all(self, world):
        fund = sell(world, [(BIDDER_A, 10**18 + 7), (BIDDER_B, 2 * 10**18 + 13)])
        instance, currency = world["instance"], world["currency"]

        paid = instance.batch_claim(world["commitment"].requests())

        assert fund == 2 * 10**18 + 13
        assert world["collectibles"].owner_of(1) == BIDDER_B
        assert currency.balance_of(BIDDER_A) == 10**24
        assert sum(paid) + instance.balance() == fund
        assert instance.balance() == dust(fund, SHARES)
        assert 0 <= instance.balance() < len(SHARES)
        for i, amount in enumerate(paid):
            assert currency.balance_of(addr(i + 1)) == amount

    def test_curator_fee_reduces_fund(self, world):
        fund = sell(world, [(BIDDER_A, 10_000)], curator=CURATOR, fee=10)

        assert fund == 9_000
        assert world["currency"].balance_of(CURATOR) == 1_000
        assert world["instance"].generated_fund == 9_000

    def test_claims_in_any_order(self, world):
        sell(world, [(BIDDER_A, 1_000_000)])
        instance = world["instance"]
        requests = world["commitment"].requests()

        for request in reversed(requests):
            instance.claim(*request.as_args())

        assert all(instance.is_claimed(r.index) for r in requests)
        assert [e.index for e in instance.events] == list(range(len(SHARES) - 1, -1, -1))

    def test_fund_is_write_once(self, world):
        fund = sell(world, [(BIDDER_A, 1_000_000)])
        instance = world["instance"]
        requests = world["commitment"].requests()
        instance.claim(*requests[0].as_args())

        with pytest.raises(AuctionClosed):
            instance.end_auction(STRANGER)

        assert instance.generated_fund == fund
        assert instance.claim(*requests[1].as_args()) == fund * SHARES[1] // 100_000_000

    def test_replay_after_distribution(self, world):
        sell(world, [(BIDDER_A, 1_000_000)])
        instance = world["instance"]
        request = world["commitment"].requests()[4]
        instance.claim(*request.as_args())
        balance = instance.balance()

        with pytest.raises(AlreadyClaimed):
            instance.claim(*request.as_args())
        assert instance.balance() == balance

    def test_batch_abort_restores_balances(self, world):
        sell(world, [(BIDDER_A, 1_000_000)])
        instance, currency = world["instance"], world["currency"]
        requests = [r.as_args() for r in world["commitment"].requests()]
        index, beneficiary, share, proof = requests[-1]
        requests[-1] = (index, STRANGER, share, proof)

        with pytest.raises(InvalidProof):
            instance.batch_claim(requests)

        assert instance.balance() == 1_000_000
        assert all(currency.balance_of(addr(i + 1)) == 0 for i in range(len(SHARES)))
        assert not any(instance.is_claimed(i) for i in range(len(SHARES)))


class TestAuctionPaths:
    """Lifecycle paths through the real auction house."""

    def test_instance_as_curator(self, world):
        instance, house = world["instance"], world["house"]
        auction_id = instance.create_auction(OWNER, 1, world["collectibles"], DAY, 0, instance.address, 5)

        with pytest.raises(AuctionServiceError):
            house.create_bid(auction_id, 100, BIDDER_A)

        instance.set_auction_approval(OWNER, True)
        house.create_bid(auction_id, 100, BIDDER_A)
        assert house.get_auction(auction_id).approved

    def test_reserve_price_through_instance(self, world):
        instance, house = world["instance"], world["house"]
        auction_id = instance.create_auction(OWNER, 1, world["collectibles"], DAY, 1000, ZERO_ADDRESS, 0)

        instance.set_auction_reserve_price(OWNER, 5000)
        assert house.get_auction(auction_id).reserve_price == 5000

        house.create_bid(auction_id, 5000, BIDDER_A)
        with pytest.raises(AuctionServiceError):
            instance.set_auction_reserve_price(OWNER, 1)

    def test_cancel_returns_item(self, world):
        instance = world["instance"]
        instance.create_auction(OWNER, 1, world["collectibles"], DAY, 0, ZERO_ADDRESS, 0)

        instance.cancel_auction(OWNER)

        assert instance.phase == AuctionPhase.CANCELED
        assert world["collectibles"].owner_of(1) == instance.address
        with pytest.raises(AuctionAlreadyCreated):
            instance.create_auction(OWNER, 1, world["collectibles"], DAY, 0, ZERO_ADDRESS, 0)
        with pytest.raises(AuctionClosed):
            instance.end_auction(STRANGER)
        assert instance.generated_fund == 0

    def test_stranger_cannot_drive_lifecycle(self, world):
        instance = world["instance"]
        with pytest.raises(NotAuthorized):
            instance.create_auction(STRANGER, 1, world["collectibles"], DAY, 0, ZERO_ADDRESS, 0)
        assert world["collectibles"].owner_of(1) == instance.address

    def test_end_before_expiry_rolls_back(self, world):
        instance, house = world["instance"], world["house"]
        auction_id = instance.create_auction(OWNER, 1, world["collectibles"], DAY, 0, ZERO_ADDRESS, 0)
        house.create_bid(auction_id, 500, BIDDER_A)

        with pytest.raises(AuctionServiceError):
            instance.end_auction(STRANGER)

        assert instance.phase == AuctionPhase.CREATED
        assert instance.generated_fund == 0

    def test_house_failure_during_create_rolls_back(self, world):
        instance = world["instance"]
        with pytest.raises(AuctionServiceError):
            instance.create_auction(OWNER, 1, world["collectibles"], DAY, 0, CURATOR, 100)

        assert instance.auction_ref == 0
        assert instance.phase == AuctionPhase.NONE
        assert world["collectibles"].get_approved(1) is None
        assert world["house"].auctions == {}


class TestFactoryIsolation:
    """Several distributions under one factory."""

    def test_instances_are_independent(self, world):
        factory, currency = world["factory"], world["currency"]
        other = build_distribution([(addr(1), 100_000_000)])
        second = factory.get_instance(factory.create_instance(other.root_bytes, currency, OWNER))
        world["collectibles"].mint(second.address, 2)

        sell(world, [(BIDDER_A, 1_000_000)])

        assert second.generated_fund == 0
        request = other.requests()[0]
        assert second.claim(*request.as_args()) == 0
        assert not world["instance"].is_claimed(0)
        with pytest.raises(InvalidProof):
            second.claim(*world["commitment"].requests()[1].as_args())
