import unittest

from agentpass_mcp.bridge.errors import MiddlewareError
from agentpass_mcp.bridge.middleware import MiddlewareBuilder, MiddlewareRunner
from agentpass_mcp.bridge.models import (
    EndpointDescriptor,
    HTTPMethod,
    InvocationContext,
    MiddlewareConfig,
    OutboundRequest,
)


def make_context():
    endpoint = EndpointDescriptor(method=HTTPMethod.GET, path="/users")
    return InvocationContext(endpoint=endpoint, request=OutboundRequest(path="/users", method=HTTPMethod.GET))


class TestMiddlewareBuilder(unittest.TestCase):

    def test_build_preserves_registration_order(self):
        first, second = (lambda ctx: None), (lambda ctx: None)
        config = MiddlewareBuilder().use("pre", first).use("pre", second).build()
        self.assertEqual(config.pre, (first, second))

    def test_built_config_is_a_snapshot(self):
        builder = MiddlewareBuilder().use("auth", lambda ctx: "user")
        config = builder.build()
        builder.use("auth", lambda ctx: "other")
        self.assertEqual(len(config.auth), 1)
        self.assertEqual(len(builder.build().auth), 2)

    def test_unknown_phase_rejected(self):
        with self.assertRaises(ValueError):
            MiddlewareBuilder().use("during", lambda ctx: None)

    def test_non_callable_rejected(self):
        with self.assertRaises(TypeError):
            MiddlewareBuilder().use("pre", "not a hook")


class TestMiddlewareRunner(unittest.IsolatedAsyncioTestCase):

    async def test_auth_sets_identity_last_truthy_wins(self):
        async def first(ctx):
            return {"id": 1}

        def second(ctx):
            return None

        async def third(ctx):
            return {"id": 3}

        context = make_context()
        runner = MiddlewareRunner(MiddlewareConfig(auth=(first, second, third)))
        await runner.run_auth(context)
        self.assertEqual(context.user, {"id": 3})

    async def test_auth_failure_tagged(self):
        def broken(ctx):
            raise RuntimeError("bad token")

        with self.assertRaises(MiddlewareError) as cm:
            await MiddlewareRunner(MiddlewareConfig(auth=(broken,))).run_auth(make_context())
        self.assertEqual(cm.exception.phase, "auth")
        self.assertIn("bad token", str(cm.exception))
        self.assertIsInstance(cm.exception.original_error, RuntimeError)

    async def test_authz_false_denies(self):
        calls = []

        def deny(ctx):
            calls.append("deny")
            return False

        def never(ctx):
            calls.append("never")
            return True

        with self.assertRaises(MiddlewareError) as cm:
            await MiddlewareRunner(MiddlewareConfig(authz=(deny, never))).run_authz(make_context())
        self.assertEqual(cm.exception.phase, "authz")
        self.assertEqual(calls, ["deny"])

    async def test_authz_exception_tagged(self):
        async def explode(ctx):
            raise KeyError("role")

        with self.assertRaises(MiddlewareError) as cm:
            await MiddlewareRunner(MiddlewareConfig(authz=(explode,))).run_authz(make_context())
        self.assertEqual(cm.exception.phase, "authz")

    async def test_pre_hooks_mutate_metadata_in_order(self):
        async def a(ctx):
            ctx.metadata.setdefault("order", []).append("A")

        def b(ctx):
            ctx.metadata["order"].append("B")

        context = make_context()
        await MiddlewareRunner(MiddlewareConfig(pre=(a, b))).run_pre(context)
        self.assertEqual(context.metadata["order"], ["A", "B"])

    async def test_pre_failure_tagged(self):
        def broken(ctx):
            raise ValueError("nope")

        with self.assertRaises(MiddlewareError) as cm:
            await MiddlewareRunner(MiddlewareConfig(pre=(broken,))).run_pre(make_context())
        self.assertEqual(cm.exception.phase, "pre")

    async def test_post_chains_previous_result(self):
        async def c(ctx, response):
            return {"wrapped": response}

        def d(ctx, response):
            return {"final": response}

        result = await MiddlewareRunner(MiddlewareConfig(post=(c, d))).run_post(make_context(), "raw")
        self.assertEqual(result, {"final": {"wrapped": "raw"}})

    async def test_post_without_hooks_returns_response(self):
        self.assertEqual(await MiddlewareRunner(MiddlewareConfig()).run_post(make_context(), 42), 42)

    async def test_post_failure_tagged(self):
        def broken(ctx, response):
            raise RuntimeError("post")

        with self.assertRaises(MiddlewareError) as cm:
            await MiddlewareRunner(MiddlewareConfig(post=(broken,))).run_post(make_context(), {})
        self.assertEqual(cm.exception.phase, "post")

    async def test_error_phase_reraises_original(self):
        seen = []

        async def observe(ctx, error):
            seen.append(error)
            return "handled"

        original = RuntimeError("boom")
        with self.assertRaises(RuntimeError) as cm:
            await MiddlewareRunner(MiddlewareConfig(error=(observe, observe))).run_error(make_context(), original)
        self.assertIs(cm.exception, original)
        self.assertEqual(seen, [original, original])

    async def test_error_hook_can_replace_error(self):
        calls = []

        def replace(ctx, error):
            calls.append("replace")
            raise LookupError("replacement")

        def later(ctx, error):
            calls.append("later")

        with self.assertRaises(LookupError):
            await MiddlewareRunner(MiddlewareConfig(error=(replace, later))).run_error(
                make_context(), RuntimeError("boom"))
        self.assertEqual(calls, ["replace"])


if __name__ == '__main__':
    unittest.main()
