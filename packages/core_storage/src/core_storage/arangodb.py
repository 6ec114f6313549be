import socket
import time
from urllib.parse import urlparse
from typing import Any, Dict, List, Optional

from core_config import get_settings
from core_logging import get_logger, log_stage, log_once_process, record_error
from core_logging.error_codes import ErrorCode
from core_models.errors import BackendUnavailable, ConflictError
from core_models.models import Node, Edge
from core_storage.base import Direction
from core_storage.codec import encode_fields, decode_fields
import core_metrics


logger = get_logger("core_storage")


class ArangoStore:
    """Graph store adapter for planner nodes and edges on ArangoDB.

    Connects lazily and creates the node/edge collections and the named
    graph on first use. When the database is unreachable in DEV the store
    drops into stub mode (``db is None``): reads return ``None``/``[]`` and
    writes raise ``BackendUnavailable`` so the sync layer can keep edits in
    memory. Outside DEV an unreachable database is fatal at connect time.
    """

    def __init__(
        self,
        url: str | None = None,
        root_user: str | None = None,
        root_password: str | None = None,
        db_name: str | None = None,
        graph_name: str | None = None,
        *,
        node_col: str | None = None,
        edge_col: str | None = None,
        client: object | None = None,
        lazy: bool = True,
    ) -> None:
        cfg = get_settings()
        self._url = url or cfg.arango_url
        self._root_user = root_user or cfg.arango_root_user
        self._root_password = root_password or cfg.arango_root_password
        self._db_name = db_name or cfg.arango_db
        self._graph_name = graph_name or cfg.arango_graph_name
        self.node_col = node_col or cfg.arango_node_collection
        self.edge_col = edge_col or cfg.arango_edge_collection
        self._client = client  # injected stub for tests
        self._is_dev_env = cfg.is_dev
        self.db: Optional[Any] = None
        self.graph: Optional[Any] = None
        if not lazy:
            self._connect()

    def _is_dev(self) -> bool:
        return self._is_dev_env

    def _stub_or_raise(self, reason: str) -> None:
        if self._is_dev():
            log_once_process(logger, f"arango_stub:{self._url}", event="storage.stub_mode",
                             stage="storage", url=self._url, reason=reason)
            self.db = self.graph = None
            return
        logger.error("storage.unavailable", stage="storage", url=self._url, reason=reason)
        raise BackendUnavailable(f"ArangoDB unavailable (non-DEV): {reason}", details={"url": self._url})

    def _connect(self) -> None:
        if self.db is not None:
            return
        if self._client is not None:
            self.db = self._client
            return
        # Fast-fail probes: DNS, then a 50 ms TCP handshake.
        parsed = urlparse(self._url)
        host = parsed.hostname or self._url
        port = parsed.port or 8529
        try:
            socket.getaddrinfo(host, None)
        except socket.gaierror:
            return self._stub_or_raise(f"host '{host}' not resolvable")
        try:
            sock = socket.create_connection((host, port), timeout=0.05)
            sock.close()
        except OSError:
            return self._stub_or_raise(f"{host}:{port} unreachable")

        t0 = time.perf_counter()
        try:
            from arango import ArangoClient
            from arango.exceptions import ArangoError

            try:
                client = ArangoClient(hosts=self._url)
                sys_db = client.db("_system", username=self._root_user, password=self._root_password)
                if not sys_db.has_database(self._db_name):
                    sys_db.create_database(self._db_name)
                self.db = client.db(self._db_name, username=self._root_user, password=self._root_password)
                self.graph = (
                    self.db.graph(self._graph_name)
                    if self.db.has_graph(self._graph_name)
                    else self.db.create_graph(self._graph_name)
                )
            except (ArangoError, OSError) as exc:
                return self._stub_or_raise(str(exc))
        finally:
            core_metrics.histogram_ms(
                "arangodb_connection_latency_ms",
                (time.perf_counter() - t0) * 1_000,
            )
        try:
            for name in (self.node_col, self.edge_col):
                if not self.db.has_collection(name):
                    self.db.create_collection(name, edge=(name == self.edge_col))
            if not self.graph.has_edge_definition(self.edge_col):
                self.graph.create_edge_definition(
                    edge_collection=self.edge_col,
                    from_vertex_collections=[self.node_col],
                    to_vertex_collections=[self.node_col],
                )
        except ArangoError as exc:
            return self._stub_or_raise(str(exc))
        log_stage(logger, "storage", "arango.connected", db=self._db_name, graph=self._graph_name)

    def ready(self) -> bool:
        """Return True when a real database connection is established."""
        self._connect()
        return self.db is not None

    def _require_db(self, op: str) -> Any:
        self._connect()
        if self.db is None:
            core_metrics.counter("storage_write_failures_total", 1)
            raise BackendUnavailable(f"storage unavailable: cannot {op}", details={"op": op})
        return self.db

    def _write_failed(self, op: str, exc: Exception, **context: Any) -> BackendUnavailable:
        core_metrics.counter("storage_write_failures_total", 1)
        record_error(ErrorCode.storage_unavailable, where=f"storage.{op}",
                     message=str(exc), logger=logger, context=context)
        return BackendUnavailable(str(exc), details={"op": op, **context})

    # ── document mapping ───────────────────────────────────────────────────
    def _node_from_doc(self, doc: Dict[str, Any]) -> Node:
        return Node(id=doc.get("id") or doc["_key"], type=doc["type"], data=decode_fields(doc.get("data") or {}))

    def _edge_to_doc(self, edge: Edge) -> Dict[str, Any]:
        return {
            "_key": edge.id,
            "_from": f"{self.node_col}/{edge.from_id}",
            "_to": f"{self.node_col}/{edge.to_id}",
            "type": edge.type,
            "properties": edge.properties,
        }

    def _edge_from_doc(self, doc: Dict[str, Any]) -> Edge:
        return Edge.model_validate({
            "id": doc["_key"],
            "_from": doc["_from"].split("/", 1)[-1],
            "_to": doc["_to"].split("/", 1)[-1],
            "type": doc["type"],
            "properties": doc.get("properties") or {},
        })

    @staticmethod
    def _cursor_to_list(cursor: Any) -> List[Dict[str, Any]]:
        try:
            return list(cursor)
        except TypeError:
            pass
        for attr in ("results", "_result"):
            obj = getattr(cursor, attr, None)
            if isinstance(obj, (list, tuple)):
                return list(obj)
        return []

    # ── nodes ──────────────────────────────────────────────────────────────
    def get_node(self, node_id: str) -> Optional[Node]:
        """
        Return the node or ``None`` when it is missing or the store is in
        stub mode. Driver lookup errors are treated as a missing node.
        """
        self._connect()
        if self.db is None:
            return None
        from arango.exceptions import ArangoError
        try:
            doc = self.db.collection(self.node_col).get(node_id)
        except ArangoError as exc:
            log_stage(logger, "storage", "node.lookup_failed", node_id=node_id, error=str(exc))
            return None
        return self._node_from_doc(doc) if doc else None

    def create_node(self, node: Node) -> Node:
        db = self._require_db("create_node")
        from arango.exceptions import DocumentInsertError
        doc = {"_key": node.id, "id": node.id, "type": node.type, "data": encode_fields(node.data)}
        try:
            db.collection(self.node_col).insert(doc)
        except DocumentInsertError as exc:
            if getattr(exc, "http_code", None) == 409:
                raise ConflictError(f"node {node.id} already exists", details={"node_id": node.id}) from exc
            raise BackendUnavailable(str(exc), details={"op": "create_node"}) from exc
        return node

    def update_node(self, node_id: str, partial: Dict[str, Any]) -> Optional[Node]:
        """Shallow-merge *partial* into the node's data (last write wins per field)."""
        db = self._require_db("update_node")
        from arango.exceptions import ArangoError
        encoded = encode_fields(partial)
        aql = (
            f"FOR n IN {self.node_col} FILTER n._key == @key "
            f"UPDATE n WITH {{ data: MERGE(n.data, @patch) }} IN {self.node_col} "
            "RETURN NEW"
        )
        try:
            rows = self._cursor_to_list(db.aql.execute(aql, bind_vars={"key": node_id, "patch": encoded}))
        except ArangoError as exc:
            raise self._write_failed("update_node", exc, node_id=node_id) from exc
        if not rows:
            return None
        log_stage(logger, "storage", "node.updated", node_id=node_id, fields=sorted(partial))
        return self._node_from_doc(rows[0])

    def delete_node(self, node_id: str) -> bool:
        db = self._require_db("delete_node")
        from arango.exceptions import ArangoError
        try:
            if not db.collection(self.node_col).has(node_id):
                return False
            db.aql.execute(
                f"FOR e IN {self.edge_col} FILTER e._from == @v OR e._to == @v REMOVE e IN {self.edge_col}",
                bind_vars={"v": f"{self.node_col}/{node_id}"},
            )
            db.collection(self.node_col).delete(node_id)
        except ArangoError as exc:
            raise self._write_failed("delete_node", exc, node_id=node_id) from exc
        return True

    # ── edges ──────────────────────────────────────────────────────────────
    def get_edges(self, node_id: str, edge_type: Optional[str] = None, direction: Direction = "any") -> List[Edge]:
        self._connect()
        if self.db is None:
            return []
        vid = f"{self.node_col}/{node_id}"
        match = {
            "out": "e._from == @v",
            "in": "e._to == @v",
            "any": "(e._from == @v OR e._to == @v)",
        }[direction]
        aql = (
            f"FOR e IN {self.edge_col} FILTER {match} "
            "FILTER @t == null OR e.type == @t SORT e._key RETURN e"
        )
        from arango.exceptions import ArangoError
        try:
            rows = self._cursor_to_list(self.db.aql.execute(aql, bind_vars={"v": vid, "t": edge_type}))
        except ArangoError as exc:
            log_stage(logger, "storage", "edges.lookup_failed", node_id=node_id, error=str(exc))
            return []
        return [self._edge_from_doc(r) for r in rows]

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        self._connect()
        if self.db is None:
            return None
        from arango.exceptions import ArangoError
        try:
            doc = self.db.collection(self.edge_col).get(edge_id)
        except ArangoError as exc:
            log_stage(logger, "storage", "edge.lookup_failed", edge_id=edge_id, error=str(exc))
            return None
        return self._edge_from_doc(doc) if doc else None

    def create_edge(self, edge: Edge) -> Edge:
        db = self._require_db("create_edge")
        from arango.exceptions import DocumentInsertError
        try:
            db.collection(self.edge_col).insert(self._edge_to_doc(edge))
        except DocumentInsertError as exc:
            if getattr(exc, "http_code", None) == 409:
                raise ConflictError(f"edge {edge.id} already exists", details={"edge_id": edge.id}) from exc
            raise BackendUnavailable(str(exc), details={"op": "create_edge"}) from exc
        return edge

    def update_edge(self, edge_id: str, properties: Dict[str, Any]) -> Optional[Edge]:
        db = self._require_db("update_edge")
        from arango.exceptions import ArangoError
        col = db.collection(self.edge_col)
        try:
            doc = col.get(edge_id)
            if not doc:
                return None
            merged = {**(doc.get("properties") or {}), **(properties or {})}
            col.update({"_key": edge_id, "properties": merged})
        except ArangoError as exc:
            raise self._write_failed("update_edge", exc, edge_id=edge_id) from exc
        return self._edge_from_doc({**doc, "properties": merged})

    def delete_edge(self, edge_id: str) -> bool:
        db = self._require_db("delete_edge")
        from arango.exceptions import ArangoError
        col = db.collection(self.edge_col)
        try:
            if not col.has(edge_id):
                return False
            col.delete(edge_id)
        except ArangoError as exc:
            raise self._write_failed("delete_edge", exc, edge_id=edge_id) from exc
        return True

__all__ = ["ArangoStore"]
