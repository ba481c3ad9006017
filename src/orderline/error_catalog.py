"""
Centralized catalog of the controlled errors raised by the ordering core.
Used for operator notices and the terminal API error envelope.
"""

ERROR_CATALOG = {
    "VAL_000": {
        "title": "Invalid Request",
        "description": "The request was rejected before anything was changed.",
        "http_code": 400,
    },
    "VAL_001": {
        "title": "Cannot Delete",
        "description": "Cannot delete the last item. Delete the entire order instead.",
        "http_code": 400,
    },
    "VAL_002": {
        "title": "Invalid Split Payment",
        "description": "Cash and GCash amounts must be non-negative and add up to the amount due.",
        "http_code": 400,
    },
    "VAL_003": {
        "title": "Reason Required",
        "description": "Deleting an item that is already being prepared requires a reason.",
        "http_code": 400,
    },
    "VAL_004": {
        "title": "Invalid Order",
        "description": "An order needs a customer name and at least one item.",
        "http_code": 400,
    },
    "VAL_005": {
        "title": "Invalid Note",
        "description": "Notes cannot be empty or longer than 500 characters.",
        "http_code": 400,
    },
    "VAL_006": {
        "title": "Order In Progress",
        "description": "Only orders whose items are all still pending can be deleted.",
        "http_code": 400,
    },
    "VAL_007": {
        "title": "Invalid Status Change",
        "description": "Items only move forward: pending, preparing, ready, served.",
        "http_code": 400,
    },
    "PERM_001": {
        "title": "Permission Denied",
        "description": "Your role cannot perform this status change.",
        "http_code": 403,
    },
    "PERM_002": {
        "title": "Permission Denied",
        "description": "Only the crew member who prepared this item can update its status.",
        "http_code": 403,
    },
    "NOT_FOUND": {
        "title": "Not Found",
        "description": "The order, appended order or item does not exist on this terminal.",
        "http_code": 404,
    },
    "SYNC_001": {
        "title": "Offline Mode",
        "description": "Saved locally. Will sync when online.",
        "http_code": 503,
    },
    "SYNC_002": {
        "title": "Sync Rejected",
        "description": "The server rejected a change; the next refresh will restore its version.",
        "http_code": 409,
    },
    "SYNC_003": {
        "title": "Back Online",
        "description": "Connection restored; orders refreshed from the server.",
        "http_code": 200,
    },
    "SYNC_004": {
        "title": "Sync Failed",
        "description": "A change could not be sent to the server; the next refresh will restore its version.",
        "http_code": 500,
    },
}


def catalog_entry(code: str) -> dict:
    return ERROR_CATALOG.get(code, ERROR_CATALOG["VAL_000"])
