# tests/server/test_session.py

import pytest
from unittest.mock import MagicMock, patch

from neo4jcypher.core.entities import Node, Relationship
from neo4jcypher.errors import (
    BuildError,
    CypherError,
    MalformedDiscoveryResponse,
    QueryFailure,
    ServerUnavailable,
)
from neo4jcypher.server.endpoint import HttpEndpoint
from neo4jcypher.server.session import CypherSession
from neo4jcypher.server.transaction import CypherTransaction, statement_body

from conftest import CYPHER_URL, DATA_URL, ROOT_URL, TX_URL, cypher_rows, json_response, tx_rows

ROOT_WITH_SLASH = {"management": "http://localhost:7474/db/manage/", "data": "http://localhost:7474/db/data/"}
ROOT_WITHOUT_SLASH = {"management": "http://localhost:7474/db/manage", "data": "http://localhost:7474/db/data"}

EXEC_URL = TX_URL + "/1"
COMMIT_URL = EXEC_URL + "/commit"


# --- Discovery ---

class TestSessionOpen:

    @pytest.mark.parametrize("root", [ROOT_WITH_SLASH, ROOT_WITHOUT_SLASH])
    def test_data_url_always_ends_with_slash(self, endpoint, root):
        endpoint.get.side_effect = [json_response(200, root), json_response(200, {})]

        session = CypherSession.open(ROOT_URL, endpoint=endpoint)

        assert session.resource_url == DATA_URL
        assert [c.args[0] for c in endpoint.get.call_args_list] == [ROOT_URL, DATA_URL]

    def test_defaults_to_localhost(self, endpoint):
        endpoint.get.side_effect = [json_response(200, ROOT_WITH_SLASH), json_response(200, {})]
        CypherSession.open(endpoint=endpoint)
        assert endpoint.get.call_args_list[0].args[0] == "http://localhost:7474"

    def test_fallback_sub_resource_urls(self, endpoint):
        endpoint.get.side_effect = [json_response(200, ROOT_WITH_SLASH), json_response(200, {})]
        session = CypherSession.open(ROOT_URL, endpoint=endpoint)
        assert session.cypher_url == CYPHER_URL
        assert session.transaction_url == TX_URL

    def test_advertised_sub_resource_urls(self, endpoint):
        data = {"cypher": "http://other/cypher", "transaction": "http://other/transaction"}
        endpoint.get.side_effect = [json_response(200, ROOT_WITH_SLASH), json_response(200, data)]
        session = CypherSession.open(ROOT_URL, endpoint=endpoint)
        assert session.cypher_url == "http://other/cypher"
        assert session.transaction_url == "http://other/transaction"

    def test_server_unavailable(self, endpoint):
        endpoint.get.return_value = json_response(503, {})
        with pytest.raises(ServerUnavailable, match="Server not available on http://localhost:7474"):
            CypherSession.open(ROOT_URL, endpoint=endpoint)

    def test_data_resource_unavailable(self, endpoint):
        endpoint.get.side_effect = [json_response(200, ROOT_WITH_SLASH), json_response(401, {})]
        with pytest.raises(ServerUnavailable):
            CypherSession.open(ROOT_URL, endpoint=endpoint)

    @pytest.mark.parametrize("root", [{}, {"data": None}, {"data": ""}, ["data"]])
    def test_missing_data_url(self, endpoint, root):
        endpoint.get.return_value = json_response(200, root)
        with pytest.raises(MalformedDiscoveryResponse):
            CypherSession.open(ROOT_URL, endpoint=endpoint)

    def test_non_object_data_resource(self, endpoint):
        endpoint.get.side_effect = [json_response(200, ROOT_WITH_SLASH), json_response(200, [])]
        with pytest.raises(MalformedDiscoveryResponse):
            CypherSession.open(ROOT_URL, endpoint=endpoint)

    def test_builds_http_endpoint_with_auth(self):
        with patch("neo4jcypher.server.session.HttpEndpoint") as endpoint_cls:
            fake = MagicMock(spec=HttpEndpoint)
            fake.get.side_effect = [json_response(200, ROOT_WITH_SLASH), json_response(200, {})]
            endpoint_cls.return_value = fake

            CypherSession.open(ROOT_URL, auth=("username", "password"), timeout=5)

            config = endpoint_cls.call_args.args[0]
            assert config.auth == ("username", "password")
            assert config.timeout == 5
            assert config.url == ROOT_URL


# --- Queries ---

class TestQuery:

    def test_autocommit_body(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["id"], [[1]])
        session._query("RETURN 1")
        session._query("RETURN {p}", {"p": 1})
        assert [c.args for c in endpoint.post.call_args_list] == [
            (CYPHER_URL, {"query": "RETURN 1"}),
            (CYPHER_URL, {"query": "RETURN {p}", "params": {"p": 1}}),
        ]

    def test_query_returns_records(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["id", "name"], [[1, "a"], [2, "b"]])
        records = session.query("MATCH (n) RETURN ID(n) AS id, n.name AS name")
        assert list(records) == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]

    def test_query_raises_cypher_error(self, session, endpoint):
        endpoint.post.return_value = json_response(
            400,
            {"message": "Invalid input 'S'", "exception": "SyntaxException", "fullname": "org.neo4j.cypher.SyntaxException"},
        )
        with pytest.raises(CypherError) as exc_info:
            session.query("SSTART n=node(0) RETURN ID(n)")
        assert exc_info.value.status == "SyntaxException"
        assert exc_info.value.code == "org.neo4j.cypher.SyntaxException"
        assert "Invalid input" in exc_info.value.message

    def test_query_in_transaction(self, session, endpoint):
        endpoint.post.return_value = json_response(
            201, tx_rows(["x"], [[5]], commit=COMMIT_URL), {"Location": EXEC_URL}
        )
        tx = session.begin_tx()
        records = list(session.query("RETURN 5 AS x", tx=tx))
        assert records == [{"x": 5}]
        endpoint.post.assert_called_once_with(TX_URL, statement_body("RETURN 5 AS x"))

    def test_first_statement_error_in_transaction(self, session, endpoint):
        endpoint.post.return_value = json_response(
            200, {"results": [], "errors": [{"code": "Neo.ClientError.Statement.InvalidSyntax", "message": "Invalid input 'X'"}]}
        )
        tx = session.begin_tx()
        with pytest.raises(CypherError) as exc_info:
            session.query("XRETURN", tx=tx)
        assert exc_info.value.code == "Neo.ClientError.Statement.InvalidSyntax"
        assert exc_info.value.status == "InvalidSyntax"
        assert tx.closed

    def test_query_or_fail_single_row(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["ID(n)"], [[28]])
        assert session._query_or_fail("CREATE (n) RETURN ID(n)", single_row=True) == [28]


class TestCreateNode:

    def test_create_node_end_to_end(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["ID(n)"], [[28]])

        node = session.create_node({"name": "jimmy"})

        endpoint.post.assert_called_once_with(CYPHER_URL, {"query": "CREATE (n {name: 'jimmy'}) RETURN ID(n)"})
        assert isinstance(node, Node)
        assert node.neo_id == 28
        assert node.session is session

    def test_create_bare_node(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["ID(n)"], [[1]])
        session.create_node()
        endpoint.post.assert_called_once_with(CYPHER_URL, {"query": "CREATE (n ) RETURN ID(n)"})

    def test_create_node_with_label(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["ID(n)"], [[1]])
        session.create_node({}, ["person"])
        endpoint.post.assert_called_once_with(CYPHER_URL, {"query": "CREATE (n:`person` {}) RETURN ID(n)"})

    def test_create_node_failure(self, session, endpoint):
        endpoint.post.return_value = json_response(
            400, {"message": "constraint", "exception": "ConstraintViolationException", "fullname": "x.y"}
        )
        with pytest.raises(QueryFailure) as exc_info:
            session.create_node({"name": "jimmy"}, ["Person"])
        assert exc_info.value.status == "ConstraintViolationException"

    def test_create_node_invalid_property_before_io(self, session, endpoint):
        with pytest.raises(BuildError):
            session.create_node({"tags": ["a"]})
        endpoint.post.assert_not_called()


class TestLoad:

    def test_load_node(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["n"], [[{"self": "x", "data": {}}]])
        node = session.load_node(1915)
        assert node.neo_id == 1915
        endpoint.post.assert_called_once_with(CYPHER_URL, {"query": "START n=node(1915) RETURN n"})

    def test_load_node_not_found(self, session, endpoint):
        endpoint.post.return_value = json_response(
            400, {"message": "Node with id 1915", "exception": "EntityNotFoundException"}
        )
        assert session.load_node(1915) is None

    def test_load_node_not_found_in_fresh_transaction(self, session, endpoint):
        endpoint.post.return_value = json_response(
            200, {"results": [], "errors": [{"code": "Neo.ClientError.Statement.EntityNotFound", "message": "Node with id 1915"}]}
        )
        tx = session.begin_tx()
        assert session.load_node(1915, tx=tx) is None
        endpoint.post.assert_called_once_with(TX_URL, statement_body("START n=node(1915) RETURN n"))

    def test_load_node_other_error(self, session, endpoint):
        endpoint.post.return_value = json_response(400, {"message": "boom", "exception": "SomeError"})
        with pytest.raises(CypherError) as exc_info:
            session.load_node(1915)
        assert exc_info.value.status == "SomeError"

    def test_load_relationship(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["r"], [[{"self": "x", "data": {}}]])
        rel = session.load_relationship(5)
        assert isinstance(rel, Relationship)
        assert rel.neo_id == 5

    def test_load_relationship_not_found_by_message(self, session, endpoint):
        endpoint.post.return_value = json_response(
            400, {"message": "Relationship 5 Not Found", "exception": "BadInputException"}
        )
        assert session.load_relationship(5) is None

    def test_load_relationship_other_error(self, session, endpoint):
        endpoint.post.return_value = json_response(400, {"message": "boom", "exception": "SomeError"})
        with pytest.raises(CypherError):
            session.load_relationship(5)


class TestFind:

    def test_find_all_nodes(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["ID(n)"], [[1], [2]])
        nodes = list(session.find_all_nodes("person"))
        assert nodes == [Node(session, neo_id=1), Node(session, neo_id=2)]
        endpoint.post.assert_called_once_with(CYPHER_URL, {"query": "MATCH (n:`person`) RETURN ID(n)"})

    @pytest.mark.parametrize(
        "value, rendered",
        [("value", "'value'"), (4, "4"), (4.5, "4.5"), (1.1, "1.1")],
    )
    def test_find_nodes_value_rendering(self, session, endpoint, value, rendered):
        endpoint.post.return_value = cypher_rows(["ID(n)"], [[1]])
        list(session.find_nodes("label", "key", value))
        query = endpoint.post.call_args.args[1]["query"]
        assert f"WHERE n.key = {rendered} " in query

    def test_find_nodes_empty_result(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["ID(n)"], [])
        assert list(session.find_nodes("label", "key", "x")) == []

    def test_find_failure(self, session, endpoint):
        endpoint.post.return_value = json_response(400, {"message": "bad", "exception": "SyntaxException"})
        with pytest.raises(QueryFailure):
            session.find_all_nodes("person")

    def test_nested_collect_results(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["c"], [[[1, 2]]])
        response = session._query("MATCH (n:`person`) RETURN collect(ID(n))")
        outer = list(session.search_result_to_enumerable(response))
        assert [n.neo_id for n in outer[0]] == [1, 2]

    def test_query_label(self, session, endpoint):
        endpoint.post.return_value = cypher_rows(["ID(n)"], [[3]])
        nodes = list(session.query_label("person", {"name": "x"}, "name", 10))
        assert nodes == [Node(session, neo_id=3)]
        endpoint.post.assert_called_once_with(
            CYPHER_URL, {"query": "MATCH (n:`person`) WHERE n.name='x' RETURN ID(n) ORDER BY n.`name` LIMIT 10"}
        )

    def test_query_label_bad_order_before_io(self, session, endpoint):
        with pytest.raises(BuildError):
            session.query_label("person", order={"name": "sideways"})
        endpoint.post.assert_not_called()


class TestIndexes:

    def test_indexes_keep_server_order(self, session, endpoint):
        endpoint.get.return_value = json_response(
            200, [{"label": "person", "property_keys": ["name"]}, {"label": "person", "property_keys": ["age", "city"]}]
        )
        assert session.indexes("person") == {"property_keys": [["name"], ["age", "city"]]}
        endpoint.get.assert_called_once_with(DATA_URL + "schema/index/person")

    def test_indexes_failure(self, session, endpoint):
        endpoint.get.return_value = json_response(404, {})
        with pytest.raises(ServerUnavailable):
            session.indexes("person")


# --- Transactions and close ---

class TestSessionTransactions:

    def test_begin_tx_is_unopened(self, session, endpoint):
        tx = session.begin_tx()
        assert isinstance(tx, CypherTransaction)
        assert tx.transaction_url == TX_URL
        endpoint.post.assert_not_called()

    def test_create_node_in_transaction(self, session, endpoint):
        endpoint.post.return_value = json_response(
            201, tx_rows(["ID(n)"], [[8]], commit=COMMIT_URL), {"Location": EXEC_URL}
        )
        with session.begin_tx() as tx:
            node = session.create_node({"name": "alice"}, ["Person"], tx=tx)
            endpoint.post.return_value = json_response(200, {"results": [], "errors": []})
        assert node.neo_id == 8
        assert endpoint.post.call_args_list[0].args == (
            TX_URL, statement_body("CREATE (n:`Person` {name: 'alice'}) RETURN ID(n)")
        )
        assert endpoint.post.call_args_list[1].args[0] == COMMIT_URL

    def test_close_rolls_back_open_transactions(self, session, endpoint, caplog):
        endpoint.post.return_value = json_response(
            201, tx_rows([], [], commit=COMMIT_URL), {"Location": EXEC_URL}
        )
        endpoint.delete.return_value = json_response(200, {})
        tx = session.begin_tx()
        tx.execute("CREATE (n)")

        with caplog.at_level("WARNING"):
            session.close()

        endpoint.delete.assert_called_once_with(EXEC_URL)
        endpoint.close.assert_called_once()
        assert tx.closed
        assert session.closed
        assert "left open at session close" in caplog.text

    def test_close_leaves_finished_transactions_alone(self, session, endpoint):
        tx = session.begin_tx()
        tx.rollback()
        session.close()
        endpoint.delete.assert_not_called()

    def test_close_is_idempotent(self, session, endpoint):
        session.close()
        session.close()
        endpoint.close.assert_called_once()

    def test_context_manager_closes(self, endpoint):
        with CypherSession(DATA_URL, endpoint) as session:
            assert not session.closed
        assert session.closed

    def test_str(self, session):
        assert str(session) == f"CypherSession {DATA_URL}"
