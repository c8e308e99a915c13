# hookrelay/openapi.py
# OpenAPI description served at /openapi.json

_HOOK_ID = {
    "name": "id",
    "in": "path",
    "required": True,
    "schema": {"type": "string"},
    "example": "vgctbpvG0MFt",
}

_UNAUTHORIZED = {"$ref": "#/components/responses/Unauthorized"}
_NOT_FOUND = {"$ref": "#/components/responses/NotFound"}
_FORBIDDEN = {"$ref": "#/components/responses/Forbidden"}


def _json(schema):
    return {"application/json": {"schema": schema}}


OPENAPI_SPEC = {
    "openapi": "3.1.0",
    "info": {
        "title": "KeyHook API",
        "description": (
            "Webhook receiver for AI agents. Create webhook URLs, receive events from "
            "external services, and poll events via REST API. No public endpoint needed "
            "on the agent side."
        ),
        "version": "1.0.0",
    },
    "tags": [
        {"name": "Hooks", "description": "Manage webhook endpoints"},
        {"name": "Events", "description": "Retrieve received webhook events"},
        {"name": "Webhook Receiver", "description": "Public endpoint for external services"},
    ],
    "paths": {
        "/hooks": {
            "post": {
                "tags": ["Hooks"],
                "summary": "Create a webhook endpoint",
                "operationId": "createHook",
                "security": [{"bearerAuth": []}],
                "requestBody": {
                    "content": _json({
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "description": {"type": "string"},
                            "delivery_method": {
                                "type": "string",
                                "enum": ["poll", "nostr", "email"],
                                "default": "poll",
                            },
                            "delivery_config": {"type": "object"},
                        },
                    }),
                },
                "responses": {
                    "201": {
                        "description": "Webhook endpoint created",
                        "content": _json({"$ref": "#/components/schemas/Hook"}),
                    },
                    "401": _UNAUTHORIZED,
                },
            },
            "get": {
                "tags": ["Hooks"],
                "summary": "List all webhook endpoints",
                "operationId": "listHooks",
                "security": [{"bearerAuth": []}],
                "responses": {
                    "200": {
                        "description": "List of webhook endpoints",
                        "content": _json({
                            "type": "object",
                            "properties": {
                                "hooks": {"type": "array", "items": {"$ref": "#/components/schemas/Hook"}},
                            },
                        }),
                    },
                    "401": _UNAUTHORIZED,
                },
            },
        },
        "/hooks/{id}": {
            "get": {
                "tags": ["Hooks"],
                "summary": "Get webhook endpoint details",
                "operationId": "getHook",
                "security": [{"bearerAuth": []}],
                "parameters": [_HOOK_ID],
                "responses": {
                    "200": {"description": "Hook details", "content": _json({"$ref": "#/components/schemas/Hook"})},
                    "401": _UNAUTHORIZED,
                    "403": _FORBIDDEN,
                    "404": _NOT_FOUND,
                },
            },
            "delete": {
                "tags": ["Hooks"],
                "summary": "Delete webhook endpoint",
                "operationId": "deleteHook",
                "security": [{"bearerAuth": []}],
                "parameters": [_HOOK_ID],
                "responses": {
                    "200": {
                        "description": "Webhook deleted",
                        "content": _json({
                            "type": "object",
                            "properties": {"success": {"type": "boolean"}, "message": {"type": "string"}},
                        }),
                    },
                    "401": _UNAUTHORIZED,
                    "404": _NOT_FOUND,
                },
            },
        },
        "/hooks/{id}/events": {
            "get": {
                "tags": ["Events"],
                "summary": "Poll for webhook events",
                "description": "Use ?undelivered=true for new events only.",
                "operationId": "getEvents",
                "security": [{"bearerAuth": []}],
                "parameters": [
                    _HOOK_ID,
                    {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50, "maximum": 100}},
                    {"name": "undelivered", "in": "query", "schema": {"type": "boolean", "default": False}},
                    {"name": "mark_delivered", "in": "query", "schema": {"type": "boolean", "default": True}},
                ],
                "responses": {
                    "200": {
                        "description": "List of events",
                        "content": _json({
                            "type": "object",
                            "properties": {
                                "events": {"type": "array", "items": {"$ref": "#/components/schemas/Event"}},
                                "count": {"type": "integer"},
                                "has_more": {"type": "boolean"},
                            },
                        }),
                    },
                    "401": _UNAUTHORIZED,
                    "403": _FORBIDDEN,
                    "404": _NOT_FOUND,
                },
            },
        },
        "/webhook/{id}": {
            "post": {
                "tags": ["Webhook Receiver"],
                "summary": "Receive a webhook (public endpoint)",
                "description": "Accepts any method. Always answers 200.",
                "operationId": "receiveWebhook",
                "parameters": [_HOOK_ID],
                "responses": {
                    "200": {
                        "description": "Webhook received",
                        "content": _json({
                            "type": "object",
                            "properties": {"received": {"type": "boolean"}, "event_id": {"type": "string"}},
                        }),
                    },
                },
            },
        },
    },
    "components": {
        "securitySchemes": {
            "bearerAuth": {"type": "http", "scheme": "bearer", "description": "KeyKeeper API token"},
        },
        "schemas": {
            "Hook": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "webhook_url": {"type": "string", "format": "uri"},
                    "name": {"type": ["string", "null"]},
                    "description": {"type": ["string", "null"]},
                    "delivery_method": {"type": "string", "enum": ["poll", "nostr", "email"]},
                    "delivery_config": {"type": ["object", "null"]},
                    "created_at": {"type": "string", "format": "date-time"},
                    "last_triggered_at": {"type": ["string", "null"], "format": "date-time"},
                    "event_count": {"type": "integer"},
                },
            },
            "Event": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "method": {"type": "string"},
                    "headers": {"type": "object"},
                    "body": {},
                    "query_params": {"type": ["object", "null"]},
                    "source_ip": {"type": ["string", "null"]},
                    "received_at": {"type": "string", "format": "date-time"},
                    "delivered_at": {"type": ["string", "null"], "format": "date-time"},
                },
            },
            "Error": {"type": "object", "properties": {"error": {"type": "string"}}},
        },
        "responses": {
            "Unauthorized": {
                "description": "Missing or invalid authentication",
                "content": _json({"$ref": "#/components/schemas/Error"}),
            },
            "Forbidden": {
                "description": "Hook belongs to another token",
                "content": _json({"$ref": "#/components/schemas/Error"}),
            },
            "NotFound": {
                "description": "Resource not found",
                "content": _json({"$ref": "#/components/schemas/Error"}),
            },
        },
    },
}
