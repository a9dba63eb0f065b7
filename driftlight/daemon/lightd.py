
# daemon/lightd.py
# Root-only daemon that owns the LED hardware, the Light state and the render thread.
# Talks to unprivileged web/API/CLI clients via a Unix domain socket or TCP (length-prefixed JSON).
from __future__ import annotations
import asyncio, json, struct, contextlib, argparse, logging, os, sys
from dataclasses import asdict
from typing import Any, Dict

import numpy as np

from driftlight.constants import (DEFAULT_DECAY, DEFAULT_ID, DEFAULT_LAMBDA, DEFAULT_NAME,
                                  DEFAULT_RATE, SOCK_PATH, STATUS_INTERVAL)
from driftlight.light import Light, Message
from driftlight.logger_setup import setup_logging
from driftlight.params import ParameterError, parse_byte, validate
from driftlight.render import RenderLoop
from driftlight.sinks import BackoffSink, NullSink, StdoutDumpSink, TickerSink
from driftlight.store import LightStore

logger = logging.getLogger("driftlight.daemon")

def _pack(obj: Dict[str, Any]) -> bytes:
    b = json.dumps(obj, separators=(',', ':')).encode()
    return struct.pack(">I", len(b)) + b

async def _read_exact(reader: asyncio.StreamReader, n: int) -> bytes:
    buf = b""
    while len(buf) < n:
        chunk = await reader.read(n - len(buf))
        if not chunk:
            raise EOFError
        buf += chunk
    return buf

async def _read_msg(reader: asyncio.StreamReader) -> Dict[str, Any]:
    hdr = await _read_exact(reader, 4)
    (length,) = struct.unpack(">I", hdr)
    data = await _read_exact(reader, length)
    return json.loads(data.decode())

class LightManager:
    def __init__(self, store: LightStore, render: RenderLoop, status_interval: float = STATUS_INTERVAL):
        self.store = store
        self.render = render
        self.status_interval = status_interval
        self.cmd_q: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
        self.subs: set[asyncio.StreamWriter] = set()

    async def run(self):
        # Commands are applied one at a time, in arrival order.
        while True:
            cmd = await self.cmd_q.get()
            await self._handle(cmd)

    async def announce(self):
        # Periodic status push to subscribers; takes the read lock only.
        while True:
            await asyncio.sleep(self.status_interval)
            if self.subs:
                await self._broadcast({"event": "status", "data": self._status()})

    async def watch_render(self, poll: float = 0.5):
        while True:
            await asyncio.sleep(poll)
            if not self.render.running:
                raise RuntimeError("render loop is no longer running")

    def _status(self) -> Dict[str, Any]:
        return {
            **self.store.snapshot(),
            "render": self.render.stats(),
            "messages": [asdict(m) for m in self.store.state_messages()],
        }

    async def _broadcast(self, msg: Dict[str, Any]):
        dead = []
        for w in list(self.subs):
            try:
                w.write(_pack(msg)); await w.drain()
            except (ConnectionError, OSError) as e:
                logger.info("dropping subscriber: %s", e)
                dead.append(w)
        for w in dead: self.subs.discard(w)

    async def _reply(self, w: asyncio.StreamWriter | None, id: int | None, ok=True, result=None, error=None):
        if not w: return
        try:
            w.write(_pack({"id": id, "ok": ok, "result": result, "error": error}))
            await w.drain()
        except (ConnectionError, OSError) as e:
            # client hung up before its reply
            logger.info("dropping reply to %s: %s", id, e)
            self.subs.discard(w)

    async def _handle(self, cmd: Dict[str, Any]):
        method = cmd.get("method")
        params = cmd.get("params", {})
        id_ = cmd.get("id")
        w = cmd.get("writer")

        logger.debug("Received command: %s with params: %s", method, params)

        try:
            if method == "subscribe":
                self.subs.add(w)
                logger.info("Client subscribed to status updates")
                await self._reply(w, id_, result={"ok": True}); return

            if method == "get_state":
                await self._reply(w, id_, result=self._status()); return

            if method == "get_config":
                await self._reply(w, id_, result=self.store.config()); return

            if method == "set_param":
                name = params["name"]
                try:
                    applied = self.store.set_parameter(name, str(params["value"]))
                except ParameterError as e:
                    logger.warning("rejected %s=%r: %s", name, params["value"], e)
                    await self._reply(w, id_, ok=False, error=str(e)); return
                if not applied:
                    await self._reply(w, id_, ok=False, error=f"unknown parameter '{name}'"); return
                await self._reply(w, id_, result=self.store.snapshot()); return

            if method == "publish":
                out = self.store.handle(Message(params["topic"], str(params.get("payload", ""))))
                await self._reply(w, id_, result={"messages": [asdict(m) for m in out]}); return

            logger.warning("Unknown method: %s", method)
            await self._reply(w, id_, ok=False, error="unknown method")
        except Exception as e:
            logger.exception("Error handling command %s", method)
            await self._reply(w, id_, ok=False, error=str(e))

async def _client_task(reader: asyncio.StreamReader, writer: asyncio.StreamWriter, mgr: LightManager):
    logger.info("New client connected")
    try:
        while True:
            msg = await _read_msg(reader)
            msg["writer"] = writer
            await mgr.cmd_q.put(msg)
    except EOFError:
        logger.info("Client disconnected")
    except Exception as e:
        logger.warning("Client error: %s", e)
    finally:
        mgr.subs.discard(writer)
        with contextlib.suppress(Exception):
            writer.close(); await writer.wait_closed()

async def start_unix_server(manager, socket_path):
    if os.path.exists(socket_path):
        os.unlink(socket_path)
    server = await asyncio.start_unix_server(lambda r, w: _client_task(r, w, manager), path=socket_path)
    os.chmod(socket_path, 0o666)
    return server

async def start_tcp_server(manager, host, port):
    return await asyncio.start_server(lambda r, w: _client_task(r, w, manager), host=host, port=port)

def make_sink(kind: str):
    if kind == "strip":
        # only importable on the Pi
        from driftlight.hardware import PixelStripSink, initialize_strip
        return PixelStripSink(initialize_strip())
    if kind == "ticker":
        return TickerSink()
    if kind == "stdout":
        return StdoutDumpSink()
    if kind == "null":
        return NullSink()
    raise ValueError(f"unknown sink '{kind}'")

def shutdown(render: RenderLoop, sink):
    """Stop rendering, then turn the strip off if the sink can."""
    render.stop()
    if not hasattr(sink, "blackout"):
        return
    if render.alive:
        logger.warning("render thread still writing, leaving strip as is")
        return
    sink.blackout()

async def main(args):
    light = Light(name=args.name, id=args.id,
                  lambda_=args.lambda_, decay=args.decay, rate=args.rate)
    store = LightStore(light)
    sink = make_sink(args.sink)
    render = RenderLoop(store, BackoffSink(sink),
                        rng=np.random.default_rng(args.seed))
    mgr = LightManager(store, render, status_interval=args.status_interval)

    servers = []
    if args.socket:
        servers.append(await start_unix_server(mgr, args.socket))
        logger.info("UDS listening on %s", args.socket)
    if args.tcp:
        host, port = args.tcp.rsplit(":", 1)
        servers.append(await start_tcp_server(mgr, host, int(port)))
        logger.info("TCP listening on %s:%s", host, port)

    render.start()
    failed = False
    try:
        async with asyncio.TaskGroup() as tg:
            for s in servers:
                tg.create_task(s.serve_forever())
            tg.create_task(mgr.run())
            tg.create_task(mgr.announce())
            tg.create_task(mgr.watch_render())
    except* RuntimeError as eg:
        for e in eg.exceptions:
            logger.error("%s", e)
        failed = True
    finally:
        shutdown(render, sink)
    return 1 if failed else 0

def _byte_arg(name):
    def convert(text):
        try:
            return validate(name, parse_byte(text))
        except ParameterError as e:
            raise argparse.ArgumentTypeError(str(e))
    return convert

def build_parser():
    ap = argparse.ArgumentParser(description="drifting particle light daemon")
    ap.add_argument("--socket", default=SOCK_PATH)
    ap.add_argument("--tcp", default=None)          # e.g. "127.0.0.1:8765"
    ap.add_argument("--sink", default="strip", choices=["strip", "ticker", "stdout", "null"])
    ap.add_argument("--name", default=DEFAULT_NAME)
    ap.add_argument("--id", default=DEFAULT_ID)
    ap.add_argument("--lambda", dest="lambda_", type=_byte_arg("lambda"), default=DEFAULT_LAMBDA)
    ap.add_argument("--decay", type=_byte_arg("decay"), default=DEFAULT_DECAY)
    ap.add_argument("--rate", type=_byte_arg("rate"), default=DEFAULT_RATE)
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--status-interval", type=float, default=STATUS_INTERVAL)
    ap.add_argument("--log-level", default="INFO")
    ap.add_argument("--log-file", default=None)
    ap.add_argument("--verbose", action="store_true", help="same as --log-level DEBUG")
    return ap

def cli(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else args.log_level.upper(), args.log_file)
    try:
        sys.exit(asyncio.run(main(args)))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, exiting")

if __name__ == "__main__":
    cli()
