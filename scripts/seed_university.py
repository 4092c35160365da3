"""Seed a demo university hierarchy through the uniadmin API.

Creates (idempotent, units that already exist are reused):
  1. Sede "Universidad Central"
  2. Two Facultades with their Departamentos and Escuelas
  3. An Instituto with a Division
  4. A decano user assigned to the Facultad de Ingeniería

Requires a running uniadmin server sharing this process's JWT secret:
    uniadmin-server --local --reload

Usage:
    python scripts/seed_university.py [--api-url http://localhost:8080/api/v1]
"""

import argparse
import sys

import httpx

from uniadmin.services.tokens import make_tokens

# (name, type, parent name) in creation order; parents always come first.
UNIVERSITY = [
    ("Universidad Central", "Sede", None),
    ("Facultad de Ingeniería", "Facultad", "Universidad Central"),
    ("Departamento de Sistemas", "Departamento", "Facultad de Ingeniería"),
    ("Coordinación de Pregrado", "Coordinacion", "Departamento de Sistemas"),
    ("Escuela de Ingeniería Civil", "Escuela", "Facultad de Ingeniería"),
    ("Facultad de Ciencias", "Facultad", "Universidad Central"),
    ("Departamento de Física", "Departamento", "Facultad de Ciencias"),
    ("Escuela de Matemática", "Escuela", "Facultad de Ciencias"),
    ("Instituto de Investigación", "Instituto", "Universidad Central"),
    ("División de Proyectos", "Division", "Instituto de Investigación"),
]


def _fail(r: httpx.Response) -> None:
    print(f"   ERROR: {r.status_code} {r.text}", file=sys.stderr)
    sys.exit(1)


def _existing_units(client: httpx.Client) -> dict[tuple[str, str], int]:
    units: dict[tuple[str, str], int] = {}
    page = 1
    while True:
        r = client.get("/organizational/units", params={"page": page, "limit": 100})
        if r.status_code != 200:
            _fail(r)
        data = r.json()
        for item in data["items"]:
            units[(item["name"], item["type"])] = item["id"]
        if page >= data["pages"]:
            return units
        page += 1


def main(api_url: str) -> None:
    access_token, _ = make_tokens("usr_seed", ["admin"], "seed@universidad.edu")
    client = httpx.Client(
        base_url=api_url,
        timeout=15.0,
        headers={"Authorization": f"Bearer {access_token}"},
    )

    print(f"uniadmin API: {api_url}")
    print()

    # ── 1-3. Units ──────────────────────────────────────────────────────────
    print("1. Creating organizational units...")
    known = _existing_units(client)
    ids_by_name: dict[str, int] = {name: unit_id for (name, _), unit_id in known.items()}

    for name, unit_type, parent_name in UNIVERSITY:
        if (name, unit_type) in known:
            print(f"   -> {name} already exists, skipping.")
            continue
        r = client.post(
            "/organizational/units",
            json={"name": name, "type": unit_type, "parent_id": ids_by_name.get(parent_name)},
        )
        if r.status_code != 201:
            _fail(r)
        ids_by_name[name] = r.json()["id"]
        print(f"   -> Created {unit_type} {name} (id={ids_by_name[name]})")

    # ── 4. User ─────────────────────────────────────────────────────────────
    print("2. Ensuring decano user exists...")
    r = client.post(
        "/users",
        json={
            "email": "decano.ingenieria@universidad.edu",
            "display_name": "Decano de Ingeniería",
            "password": "cambiar-esta-clave",
            "roles": ["decano"],
            "org_unit_id": ids_by_name["Facultad de Ingeniería"],
        },
    )
    if r.status_code == 409:
        print("   -> Already exists, skipping.")
    elif r.status_code != 201:
        _fail(r)
    else:
        print(f"   -> Created: {r.json().get('user_id')}")

    # ── Summary ─────────────────────────────────────────────────────────────
    print()
    r = client.get("/organizational/hierarchy/stats")
    if r.status_code != 200:
        _fail(r)
    stats = r.json()
    print("=" * 60)
    print("  University hierarchy seeded successfully")
    print(f"  Units: {stats['total_units']} ({stats['active_units']} active)")
    print(f"  By level: {stats['by_level']}")
    print("=" * 60)
    print()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed a demo university hierarchy in uniadmin")
    parser.add_argument(
        "--api-url",
        default="http://localhost:8080/api/v1",
        help="uniadmin API base URL (default: http://localhost:8080/api/v1)",
    )
    args = parser.parse_args()
    main(args.api_url)
