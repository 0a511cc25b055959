from __future__ import annotations

from typing import Any, Dict, List

from .schema import SchemaDescription


def _props(*pairs: str) -> List[Dict[str, str]]:
    out = []
    for pair in pairs:
        name, _, kind = pair.partition(":")
        out.append({"name": name, "type": kind})
    return out


SAMPLE_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "movies": {
        "name": "Movies Database",
        "description": "Sample database with movies, people (actors, and directors)",
        "schema": {
            "nodes": [
                {"label": "Person", "properties": _props("personId:string", "name:string", "birthYear:integer", "deathYear:integer")},
                {
                    "label": "Movie",
                    "properties": _props(
                        "movieId:string", "title:string", "avgVote:float", "releaseYear:integer", "genres:string[]"
                    ),
                },
            ],
            "relationships": [
                {
                    "type": "ACTED_IN",
                    "properties": _props("roles:string[]", "billing:integer"),
                    "startNode": "Person",
                    "endNode": "Movie",
                },
                {"type": "DIRECTED", "properties": [], "startNode": "Person", "endNode": "Movie"},
            ],
        },
    },
    "social": {
        "name": "Social Network Database",
        "description": "Sample database with people, friendships, and messages",
        "schema": {
            "nodes": [
                {
                    "label": "Person",
                    "properties": _props(
                        "userId:string", "name:string", "email:string", "age:integer", "location:string", "joinDate:date"
                    ),
                },
                {"label": "Friend", "properties": _props("friendId:string", "name:string", "mutualFriends:integer")},
                {
                    "label": "Message",
                    "properties": _props(
                        "messageId:string", "content:string", "timestamp:datetime", "isRead:boolean", "priority:string"
                    ),
                },
            ],
            "relationships": [
                {"type": "FRIENDS_WITH", "properties": _props("since:date", "closeness:integer", "isMutual:boolean")},
                {"type": "SENT_MESSAGE", "properties": _props("timestamp:datetime", "channel:string")},
                {"type": "RECEIVED_MESSAGE", "properties": _props("readStatus:boolean", "readTimestamp:datetime")},
            ],
        },
    },
    "company": {
        "name": "Company Database",
        "description": "Sample database with companies, employees, and departments",
        "schema": {
            "nodes": [
                {
                    "label": "Company",
                    "properties": _props(
                        "companyId:string", "name:string", "industry:string", "founded:integer", "revenue:float",
                        "employeeCount:integer",
                    ),
                },
                {
                    "label": "Employee",
                    "properties": _props(
                        "employeeId:string", "name:string", "position:string", "salary:float", "hireDate:date",
                        "department:string",
                    ),
                },
                {
                    "label": "Department",
                    "properties": _props(
                        "departmentId:string", "name:string", "budget:float", "location:string", "manager:string"
                    ),
                },
            ],
            "relationships": [
                {"type": "WORKS_FOR", "properties": _props("since:date", "position:string", "isCurrent:boolean")},
                {"type": "BELONGS_TO", "properties": _props("since:date", "role:string")},
                {"type": "MANAGES", "properties": _props("since:date", "title:string", "reports:integer")},
            ],
        },
    },
}


def sample_schema(name: str) -> SchemaDescription:
    try:
        entry = SAMPLE_SCHEMAS[name]
    except KeyError:
        raise KeyError(f"unknown sample database '{name}' (choose from {', '.join(sorted(SAMPLE_SCHEMAS))})") from None
    return SchemaDescription.from_dict(entry["schema"])


__all__ = ["SAMPLE_SCHEMAS", "sample_schema"]
