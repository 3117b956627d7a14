from egress_sentinel.core.repetition import RepetitiveRequestTracker, param_signature


def test_param_signature_is_order_independent():
    assert param_signature("https://a.com/x?b=2&a=1") == param_signature("https://a.com/x?a=1&b=2")
    assert param_signature("https://a.com/x?a=1&b=2") == "a=1&b=2"


def test_param_signature_keeps_blank_values():
    assert param_signature("https://a.com/x?flag=&a=1") == "a=1&flag="
    assert param_signature("https://a.com/x") == ""


def test_second_identical_signature_is_flagged():
    tracker = RepetitiveRequestTracker()
    assert tracker.check("https://a.com/x", "a=1") is False
    assert tracker.check("https://a.com/x", "a=1") is True


def test_different_signature_is_not_flagged():
    tracker = RepetitiveRequestTracker()
    tracker.check("https://a.com/x", "a=1")
    assert tracker.check("https://a.com/x", "a=2") is False
    assert tracker.check("https://a.com/y", "a=1") is False


def test_tracker_records_into_shared_index():
    index = {}
    tracker = RepetitiveRequestTracker(index)
    tracker.check("https://a.com/x", "a=1")
    assert index == {"https://a.com/x": {"a=1"}}
    assert len(tracker) == 1
