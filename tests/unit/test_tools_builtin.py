"""Built-in tool handlers exercised through the registry."""

import json

import httpx
import pytest

from toolflow.config import PlatformsConfig, ToolflowConfig, ToolsConfig
from toolflow.errors import ToolExecutionError
from toolflow.tools import build_registry, default_catalog
from toolflow.tools.database import SQLiteExecutor, SqlQueryBuilder
from toolflow.tools.data import apply_operations
from toolflow.tools.filesystem import PathTraversalError, safe_join

CATALOG = default_catalog()


async def call(registry, name, tool_input):
    return await registry.dispatch(CATALOG.require(name), tool_input)


@pytest.fixture
def sql_executor(tmp_path):
    executor = SQLiteExecutor(tmp_path / "data.db")
    yield executor
    executor.close()


@pytest.fixture
def registry(tmp_path, sql_executor):
    config = ToolflowConfig(tools=ToolsConfig(workspace_dir=str(tmp_path)))
    return build_registry(config, sql_executor=sql_executor)


def _registry_with_transport(handler, **platforms):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = ToolflowConfig(platforms=PlatformsConfig(**platforms))
    return build_registry(config, http_client=client), client


# ---------------------------------------------------------------------------
# filesystem


def test_safe_join_blocks_escapes(tmp_path):
    assert safe_join(tmp_path, "a/b.txt") == (tmp_path / "a" / "b.txt").resolve()
    with pytest.raises(PathTraversalError):
        safe_join(tmp_path, "../outside.txt")
    with pytest.raises(PathTraversalError):
        safe_join(tmp_path, "/etc/passwd")


@pytest.mark.asyncio
async def test_write_append_read_and_list(registry, tmp_path):
    written = await call(registry, "write_file", {"path": "notes/today.txt", "content": "hello"})
    await call(registry, "write_file", {"path": "notes/today.txt", "content": " world", "append": True})
    read = await call(registry, "read_file", {"path": "notes/today.txt"})
    listing = await call(registry, "list_directory", {"path": "notes"})

    assert written == {"path": "notes/today.txt", "bytes_written": 5}
    assert read["content"] == "hello world"
    assert read["size"] == 11
    assert listing["entries"] == [{"name": "today.txt", "type": "file", "size": 11}]
    assert (tmp_path / "notes" / "today.txt").read_text() == "hello world"


@pytest.mark.asyncio
async def test_file_tools_reject_traversal(registry):
    with pytest.raises(ToolExecutionError, match="escapes workspace"):
        await call(registry, "read_file", {"path": "../../etc/passwd"})


@pytest.mark.asyncio
async def test_read_missing_file_is_wrapped(registry):
    with pytest.raises(ToolExecutionError) as exc_info:
        await call(registry, "read_file", {"path": "absent.txt"})
    assert exc_info.value.tool_name == "read_file"


@pytest.mark.asyncio
async def test_required_field_missing(registry):
    with pytest.raises(ToolExecutionError, match="read_file requires 'path'"):
        await call(registry, "read_file", {})


# ---------------------------------------------------------------------------
# code


@pytest.mark.asyncio
async def test_execute_python(registry):
    result = await call(registry, "execute_code", {"code": "print(6 * 7)"})

    assert result["success"] is True
    assert result["exit_code"] == 0
    assert result["stdout"].strip() == "42"


@pytest.mark.asyncio
async def test_execute_code_non_zero_exit_is_reported(registry):
    result = await call(
        registry,
        "execute_code",
        {"code": "import sys; sys.stderr.write('bad'); sys.exit(3)"},
    )

    assert result["success"] is False
    assert result["exit_code"] == 3
    assert result["stderr"] == "bad"


@pytest.mark.asyncio
async def test_execute_shell_with_args_and_env(registry):
    result = await call(
        registry,
        "execute_code",
        {"language": "shell", "code": 'echo "$GREETING $1"', "args": ["ada"], "env": {"GREETING": "hi"}},
    )

    assert result["stdout"].strip() == "hi ada"


@pytest.mark.asyncio
async def test_execute_code_rejects_disallowed_language(tmp_path):
    config = ToolflowConfig(tools=ToolsConfig(workspace_dir=str(tmp_path), allowed_languages=["python"]))
    registry = build_registry(config)

    with pytest.raises(ToolExecutionError, match="Language not allowed: shell"):
        await call(registry, "execute_code", {"language": "shell", "code": "true"})


# ---------------------------------------------------------------------------
# network


@pytest.mark.asyncio
async def test_http_request_json_roundtrip():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        seen["params"] = dict(request.url.params)
        return httpx.Response(201, json={"id": 7})

    registry, client = _registry_with_transport(handler)
    async with client:
        result = await call(
            registry,
            "http_request",
            {"url": "https://api.test/items", "method": "post", "body": {"a": 1}, "params": {"q": "x"}},
        )

    assert seen == {"method": "POST", "body": {"a": 1}, "params": {"q": "x"}}
    assert result["status"] == 201
    assert result["body"] == {"id": 7}


@pytest.mark.asyncio
async def test_http_request_text_body():
    registry, client = _registry_with_transport(lambda request: httpx.Response(200, text="pong"))
    async with client:
        result = await call(registry, "http_request", {"url": "https://api.test/ping"})

    assert result["body"] == "pong"


@pytest.mark.asyncio
async def test_http_error_status_raises():
    registry, client = _registry_with_transport(lambda request: httpx.Response(404, text="nope"))
    async with client:
        with pytest.raises(ToolExecutionError, match="HTTP 404 from GET https://api.test/x"):
            await call(registry, "http_request", {"url": "https://api.test/x"})


# ---------------------------------------------------------------------------
# database


def test_query_builder_statements():
    builder = SqlQueryBuilder()

    assert builder.build("select", "leads", {"status": "new"}) == (
        "SELECT * FROM leads WHERE status = ?",
        ["new"],
    )
    assert builder.build("update", "leads", {"id": 3}, {"status": "won"}) == (
        "UPDATE leads SET status = ? WHERE id = ? RETURNING *",
        ["won", 3],
    )


def test_query_builder_postgres_placeholders():
    builder = SqlQueryBuilder(placeholder=lambda n: f"${n}")

    sql, params = builder.build("insert", "leads", data={"name": "Ada", "score": 5})

    assert sql == "INSERT INTO leads (name, score) VALUES ($1, $2) RETURNING *"
    assert params == ["Ada", 5]


def test_query_builder_rejects_bad_input():
    builder = SqlQueryBuilder()
    with pytest.raises(ToolExecutionError, match="Invalid SQL identifier"):
        builder.build("select", "leads; DROP TABLE leads")
    with pytest.raises(ToolExecutionError, match="insert requires 'data'"):
        builder.build("insert", "leads")
    with pytest.raises(ToolExecutionError, match="Unsupported database operation"):
        builder.build("truncate", "leads")


@pytest.mark.asyncio
async def test_database_query_crud(registry, sql_executor):
    await sql_executor.execute(
        "CREATE TABLE leads (id INTEGER PRIMARY KEY, name TEXT, status TEXT)", []
    )

    inserted = await call(
        registry, "database_query", {"operation": "insert", "table": "leads", "data": {"name": "Ada", "status": "new"}}
    )
    await call(
        registry, "database_query", {"operation": "insert", "table": "leads", "data": {"name": "Bob", "status": "new"}}
    )
    updated = await call(
        registry,
        "database_query",
        {"operation": "update", "table": "leads", "filter": {"name": "Bob"}, "data": {"status": "won"}},
    )
    selected = await call(
        registry, "database_query", {"operation": "select", "table": "leads", "filter": {"status": "new"}}
    )
    deleted = await call(registry, "database_query", {"operation": "delete", "table": "leads"})

    assert inserted == {"data": [{"id": 1, "name": "Ada", "status": "new"}], "count": 1}
    assert updated["data"] == [{"id": 2, "name": "Bob", "status": "won"}]
    assert selected == {"data": [{"id": 1, "name": "Ada", "status": "new"}], "count": 1}
    assert deleted["count"] == 2


@pytest.mark.asyncio
async def test_database_query_without_database():
    registry = build_registry(ToolflowConfig())

    with pytest.raises(ToolExecutionError, match="No database configured"):
        await call(registry, "database_query", {"operation": "select", "table": "leads"})


# ---------------------------------------------------------------------------
# control and data


@pytest.mark.asyncio
async def test_conditional_branch(registry):
    taken = await call(
        registry, "conditional_branch", {"condition": "score > 50", "context": {"score": 80}}
    )
    skipped = await call(registry, "conditional_branch", {"condition": "score > 50"})

    assert taken == {"result": True, "branch": "true"}
    assert skipped == {"result": False, "branch": "false"}


@pytest.mark.asyncio
async def test_wait_delay_and_loop_iteration(registry):
    assert await call(registry, "wait_delay", {"duration": 10}) == {"waited": 10}
    with pytest.raises(ToolExecutionError, match="Invalid duration"):
        await call(registry, "wait_delay", {"duration": "soon"})

    assert await call(registry, "loop_iteration", {"items": ["a", "b"]}) == {
        "iterations": 2,
        "results": ["a", "b"],
    }
    with pytest.raises(ToolExecutionError):
        await call(registry, "loop_iteration", {"items": "ab"})


def test_apply_operations_pipeline():
    data = {
        "products": [
            {"name": "pen", "price": 2},
            {"name": "lamp", "price": 40},
            {"name": "desk", "price": 250},
        ]
    }
    operations = [
        {"type": "extract", "path": "products"},
        {"type": "filter", "condition": "price > 10"},
        {"type": "map", "path": "name"},
        {"type": "shuffle"},
    ]

    assert apply_operations(data, operations) == ["lamp", "desk"]
    assert apply_operations("scalar", [{"type": "map", "path": "x"}]) == "scalar"


@pytest.mark.asyncio
async def test_transform_data_tool(registry):
    result = await call(
        registry,
        "transform_data",
        {"data": [{"n": 1}, {"n": 5}], "operations": [{"type": "filter", "condition": "n >= 5"}]},
    )
    assert result == {"result": [{"n": 5}]}

    with pytest.raises(ToolExecutionError, match="list of operations"):
        await call(registry, "transform_data", {"data": [], "operations": "filter"})


# ---------------------------------------------------------------------------
# platforms


@pytest.mark.asyncio
async def test_aitable_create_record():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"records": [{"recordId": "rec42"}]}})

    registry, client = _registry_with_transport(handler, aitable_api_key="at-key")
    async with client:
        result = await call(
            registry, "aitable_create_record", {"datasheet_id": "dst1", "fields": {"Name": "Ada"}}
        )

    assert result == {"success": True, "record_id": "rec42"}
    assert seen == {
        "auth": "Bearer at-key",
        "path": "/fusion/v1/datasheets/dst1/records",
        "body": {"records": [{"fields": {"Name": "Ada"}}]},
    }


@pytest.mark.asyncio
async def test_aitable_error_message_surfaces():
    def handler(request):
        return httpx.Response(401, json={"message": "invalid token"})

    registry, client = _registry_with_transport(handler, aitable_api_key="bad")
    async with client:
        with pytest.raises(ToolExecutionError, match="Aitable CRM error: invalid token"):
            await call(registry, "aitable_get_records", {"datasheet_id": "dst1"})


@pytest.mark.asyncio
async def test_aitable_requires_api_key():
    registry, client = _registry_with_transport(lambda request: httpx.Response(200, json={}))
    async with client:
        with pytest.raises(ToolExecutionError, match="API key not configured"):
            await call(registry, "aitable_get_records", {"datasheet_id": "dst1"})


@pytest.mark.asyncio
async def test_muraena_search_people():
    def handler(request):
        assert json.loads(request.content) == {"job_title": "CTO", "limit": 5}
        return httpx.Response(200, json={"data": [{"id": "p1"}], "total": 31})

    registry, client = _registry_with_transport(handler, muraena_api_key="mu-key")
    async with client:
        result = await call(
            registry, "muraena_search_people", {"filters": {"job_title": "CTO", "limit": 5}}
        )

    assert result == {"profiles": [{"id": "p1"}], "total_found": 31}


@pytest.mark.asyncio
async def test_unconfigured_platform_category_fails(registry):
    with pytest.raises(ToolExecutionError, match="requires a configured social_listening client"):
        await call(registry, "social_monitor_mentions", {"keywords": ["toolflow"]})


@pytest.mark.asyncio
async def test_injected_platform_client(tmp_path):
    class FakeSales:
        async def call(self, operation, payload):
            return {"operation": operation, "text": payload["text"]}

    registry = build_registry(ToolflowConfig(), platform_clients={"ai_sales": FakeSales()})

    result = await call(registry, "analyze_sentiment", {"text": "love it"})

    assert result == {"operation": "analyze_sentiment", "text": "love it"}
