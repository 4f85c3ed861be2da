from order_board.client import _state_orders, format_board


def test_format_board_splits_calling_and_waiting():
    orders = [
        {"id": 1, "status": "calling"},
        {"id": 2, "status": "waiting"},
        {"id": 3, "status": "waiting"},
    ]
    assert format_board(orders) == "calling: 1\nwaiting: 2 3"


def test_format_board_empty():
    assert format_board([]) == "calling: -\nwaiting: -"


def test_state_orders_ignores_other_messages():
    assert _state_orders('{"type":"state","orders":[]}') == []
    assert _state_orders('{"type":"other"}') is None
    assert _state_orders("nope") is None
