#!/usr/bin/env python3
"""
Basic Neo4jCypher usage against a running Neo4j server.

Demonstrates:
- Opening a session with basic auth
- Creating nodes and relationships
- Label lookups with filters, ordering and limits
- Multi-statement transactions

Requirements: a Neo4j 2.x server with the REST API on http://localhost:7474
(override with NEO4J_URL, NEO4J_USER, NEO4J_PASSWORD).
"""

import logging
import re

from neo4jcypher import CypherError, CypherSession, EndpointConfig


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    config = EndpointConfig.from_env()

    with CypherSession.open(config.url, auth=config.auth) as session:
        print(f"🔌 Connected: {session}")

        # Nodes
        alice = session.create_node({"name": "Alice", "age": 30}, ["Person"])
        bob = session.create_node({"name": "Bob", "age": 25}, ["Person"])
        print(f"✅ Created {alice} and {bob}")

        knows = alice.create_rel("KNOWS", bob, {"since": 2014})
        print(f"🔗 {alice.props()['name']} -[{knows.rel_type()}]-> {bob.props()['name']}")

        # Label queries
        people = session.create_label("Person")
        for node in people.query(conditions={"name": re.compile("a.*", re.IGNORECASE)}, order={"age": "desc"}, limit=5):
            print(f"   👤 {node.neo_id}: {node.props()}")

        # Raw Cypher
        for record in session.query("MATCH (n:Person) RETURN n.name AS name, n.age AS age ORDER BY age"):
            print(f"   📄 {record}")

        # Transactions commit on clean exit and roll back on error
        try:
            with session.begin_tx() as tx:
                carol = session.create_node({"name": "Carol"}, ["Person"], tx=tx)
                carol.create_rel("KNOWS", alice, tx=tx)
                session.query("THIS IS NOT CYPHER", tx=tx)
        except CypherError as e:
            print(f"↩️  Transaction rolled back: {e}")

        print(f"📇 Indexes on Person: {people.indexes()}")

        for node in (alice, bob):
            node.delete()
        print("🧹 Cleaned up")


if __name__ == "__main__":
    main()
