from __future__ import annotations

_STRING = {"type": "string"}

TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "getCurrentDateTime",
            "description": (
                "Get the current date and time in the business timezone. Call this "
                "before interpreting relative dates like 'tomorrow' or 'next Thursday'."
            ),
            "parameters": {
                "type": "object",
                "properties": {},
                "required": [],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "getAvailability",
            "description": (
                "Find open appointment slots. Pass startDate (YYYY-MM-DD) for a whole day, "
                "or datetime for a specific time to check it and get the closest alternatives. "
                "With neither, searches the next 7 days."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "startDate": {**_STRING, "description": "Date (YYYY-MM-DD) or ISO datetime"},
                    "datetime": {**_STRING, "description": "Specific ISO datetime to check"},
                    "serviceVariationId": _STRING,
                    "teamMemberId": _STRING,
                },
                "required": [],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "createBooking",
            "description": (
                "Book an appointment. Finds the customer by phone or creates them. "
                "startTime should be a slot start returned by getAvailability."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "customerName": _STRING,
                    "customerPhone": _STRING,
                    "customerEmail": _STRING,
                    "startTime": _STRING,
                    "serviceVariationId": _STRING,
                    "serviceVariationIds": {
                        "type": ["array", "string"],
                        "items": _STRING,
                        "description": "Array or comma-separated string of service variation ids",
                    },
                    "teamMemberId": _STRING,
                },
                "required": ["customerName", "customerPhone", "startTime"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "addServicesToBooking",
            "description": (
                "Add services to an existing appointment by service name. Fails with a "
                "conflict if the longer appointment would overlap the next one."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "bookingId": _STRING,
                    "serviceNames": {
                        "type": ["array", "string"],
                        "items": _STRING,
                        "description": "Array or comma-separated string of service names",
                    },
                },
                "required": ["bookingId", "serviceNames"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "rescheduleBooking",
            "description": "Move an appointment to a new start time, keeping its services.",
            "parameters": {
                "type": "object",
                "properties": {
                    "bookingId": _STRING,
                    "newStartTime": _STRING,
                },
                "required": ["bookingId", "newStartTime"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "cancelBooking",
            "description": "Cancel an appointment.",
            "parameters": {
                "type": "object",
                "properties": {"bookingId": _STRING},
                "required": ["bookingId"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "lookupBooking",
            "description": "Get a caller's upcoming and recent appointments by phone number.",
            "parameters": {
                "type": "object",
                "properties": {
                    "customerPhone": _STRING,
                    "customerName": _STRING,
                },
                "required": ["customerPhone"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "lookupCustomer",
            "description": "Check whether a caller is an existing customer.",
            "parameters": {
                "type": "object",
                "properties": {"customerPhone": _STRING},
                "required": ["customerPhone"],
                "additionalProperties": False,
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "generalInquiry",
            "description": "Answer questions about business hours, services and prices, or staff.",
            "parameters": {
                "type": "object",
                "properties": {
                    "inquiryType": {
                        "type": "string",
                        "enum": ["hours", "location", "services", "pricing", "staff", "barbers", "team"],
                    },
                },
                "required": [],
                "additionalProperties": False,
            },
        },
    },
]
