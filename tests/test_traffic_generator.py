import random

from egress_sentinel.core.descriptor import is_valid_url
from egress_sentinel.core.identifier_scanner import IdentifierScanner
from egress_sentinel.core.traffic_generator import generate_batch, generate_descriptor


def test_batches_are_reproducible_with_seed():
    a = generate_batch("mixed", 20, random.Random(5))
    b = generate_batch("mixed", 20, random.Random(5))
    assert a == b


def test_generated_urls_are_valid():
    for mode in ["normal", "exfiltration", "beacon", "mixed"]:
        assert all(is_valid_url(d.url) for d in generate_batch(mode, 15, random.Random(1)))


def test_exfiltration_carries_identifiers():
    descriptor = generate_descriptor("exfiltration", random.Random(2))
    assert descriptor.method == "POST"
    assert IdentifierScanner().scan(descriptor.body)


def test_normal_traffic_is_small():
    for descriptor in generate_batch("normal", 30, random.Random(3)):
        assert len(descriptor.url) < 80
        assert descriptor.header("Authorization") == ""
