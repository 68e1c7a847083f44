import json
import unittest

from mcp import types as mcp_types

from agentpass_mcp.bridge.core import ToolServer
from agentpass_mcp.bridge.errors import MCPError, MiddlewareError, ToolNotFoundError
from agentpass_mcp.bridge.models import (
    EndpointDescriptor,
    EndpointParameter,
    HTTPMethod,
    MiddlewareConfig,
    ParameterLocation,
)
from agentpass_mcp.bridge.pipeline import InvocationPipeline
from agentpass_mcp.bridge.schema import build_tool
from tests.fake_api import FakeUsersAPI

GET_USER = EndpointDescriptor(
    method=HTTPMethod.GET,
    path="/users/{id}",
    parameters=[EndpointParameter("id", "string", ParameterLocation.PATH, required=True)],
)
LIST_USERS = EndpointDescriptor(method=HTTPMethod.GET, path="/users", summary="List users")


class TestToolServer(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.api = FakeUsersAPI()
        self.base_url = await self.api.start()
        self.calls = []
        hooks = MiddlewareConfig(
            auth=(lambda ctx: self.calls.append("auth"),),
            authz=(lambda ctx: self.calls.append("authz") or True,),
            pre=(lambda ctx: self.calls.append("pre"),),
            error=(lambda ctx, error: self.calls.append("error"),),
        )
        self.server = ToolServer(
            [build_tool(GET_USER, base_url=self.base_url), build_tool(LIST_USERS, base_url=self.base_url)],
            pipeline=InvocationPipeline(hooks),
        )

    async def asyncTearDown(self):
        await self.api.close()

    def test_list_tools_exposes_definitions_only(self):
        tools = self.server.list_tools()
        self.assertEqual([tool["name"] for tool in tools], ["get_users_by_id", "get_users"])
        self.assertEqual(set(tools[0]), {"name", "description", "inputSchema"})
        self.assertEqual(tools[1]["description"], "List users")

    async def test_call_wraps_result_as_text_block(self):
        content = await self.server.call_tool("get_users_by_id", {"id": "1"})
        self.assertEqual(len(content), 1)
        self.assertEqual(content[0]["type"], "text")
        payload = json.loads(content[0]["text"])
        self.assertEqual(payload["status"], 200)
        self.assertEqual(payload["data"]["user"]["name"], "Alice Johnson")

    async def test_string_results_are_not_reencoded(self):
        server = ToolServer(
            [build_tool(LIST_USERS, base_url=self.base_url)],
            pipeline=InvocationPipeline(MiddlewareConfig(post=(lambda ctx, response: "plain text",))),
        )
        content = await server.call_tool("get_users", {})
        self.assertEqual(content[0]["text"], "plain text")

    async def test_404_is_a_normal_result(self):
        content = await self.server.call_tool("get_users_by_id", {"id": "999"})
        payload = json.loads(content[0]["text"])
        self.assertEqual(payload["status"], 404)
        self.assertEqual(payload["data"]["error"], "User not found")

    async def test_unknown_tool_runs_no_hooks(self):
        with self.assertRaises(ToolNotFoundError) as cm:
            await self.server.call_tool("delete_everything", {"x": 1})
        self.assertIn("Tool not found", str(cm.exception))
        self.assertIn("delete_everything", str(cm.exception))
        self.assertEqual(cm.exception.to_dict()["tool"], "delete_everything")
        self.assertEqual(self.calls, [])
        self.assertEqual(self.api.requests, [])

    async def test_pipeline_failure_becomes_protocol_error(self):
        server = ToolServer(
            [build_tool(LIST_USERS, base_url=self.base_url)],
            pipeline=InvocationPipeline(MiddlewareConfig(authz=(lambda ctx: False,))),
        )
        with self.assertRaises(MCPError) as cm:
            await server.call_tool("get_users", {"page": 1})
        error = cm.exception.to_dict()
        self.assertEqual(error["tool"], "get_users")
        self.assertEqual(error["arguments"], {"page": 1})
        self.assertEqual(error["originalError"]["name"], "MiddlewareError")
        self.assertEqual(error["originalError"]["phase"], "authz")
        self.assertIsInstance(cm.exception.original_error, MiddlewareError)
        self.assertIn("get_users", error["message"])

    def test_duplicate_names_first_wins(self):
        first = build_tool(LIST_USERS, base_url="http://first")
        second = build_tool(LIST_USERS, base_url="http://second")
        server = ToolServer([first, second])
        self.assertIs(server.get_tool("get_users"), first)
        self.assertEqual(len(server.list_tools()), 2)

    def test_mcp_server_registers_tool_handlers(self):
        mcp_server = self.server.create_mcp_server()
        self.assertIn(mcp_types.ListToolsRequest, mcp_server.request_handlers)
        self.assertIn(mcp_types.CallToolRequest, mcp_server.request_handlers)


if __name__ == '__main__':
    unittest.main()
