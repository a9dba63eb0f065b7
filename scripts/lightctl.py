#!/usr/bin/env python3
import argparse, asyncio, json, struct

def pack(obj: dict) -> bytes:
    b = json.dumps(obj, separators=(",", ":")).encode()
    return struct.pack(">I", len(b)) + b

async def read_frame(reader: asyncio.StreamReader) -> dict:
    hdr = await reader.readexactly(4)
    (n,) = struct.unpack(">I", hdr)
    data = await reader.readexactly(n)
    return json.loads(data)

async def open_conn(socket_path: str | None, tcp: str | None):
    if socket_path:
        return await asyncio.open_unix_connection(socket_path)
    assert tcp, "either --socket or --tcp required"
    host, port = tcp.rsplit(":", 1)
    return await asyncio.open_connection(host, int(port))

async def rpc_once(sock: str | None, tcp: str | None, method: str, params: dict | None = None):
    reader, writer = await open_conn(sock, tcp)
    msg = {"id": 1, "method": method, "params": params or {}}
    writer.write(pack(msg)); await writer.drain()
    try:
        resp = await asyncio.wait_for(read_frame(reader), timeout=5.0)
    except asyncio.TimeoutError:
        writer.close(); await writer.wait_closed()
        raise SystemExit("error: daemon did not respond within 5 seconds")
    writer.close(); await writer.wait_closed()
    if not resp.get("ok", False):
        raise SystemExit(f"error: {resp.get('error')}")
    return resp.get("result")

async def watch(sock: str | None, tcp: str | None):
    reader, writer = await open_conn(sock, tcp)
    writer.write(pack({"id": 1, "method": "subscribe", "params": {}})); await writer.drain()
    # print the ack
    _ = await read_frame(reader)
    print("subscribed; waiting for status events (Ctrl+C to exit)")
    try:
        while True:
            evt = await read_frame(reader)
            print(json.dumps(evt, indent=2))
    finally:
        writer.close(); await writer.wait_closed()

async def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--socket", help="Unix socket path, e.g. /run/driftlight.sock")
    ap.add_argument("--tcp", help="TCP host:port, e.g. 127.0.0.1:8765")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("state", help="show identity, parameters and render stats")

    sub.add_parser("config", help="show the topic routing config")

    p_set = sub.add_parser("set", help="set a parameter")
    p_set.add_argument("name", choices=["lambda", "decay", "rate"])
    p_set.add_argument("value", help="0..255 (rate 1..255)")

    p_pub = sub.add_parser("publish", help="deliver a topic message, e.g. home/bedroom/ceiling/decay/set 40")
    p_pub.add_argument("topic")
    p_pub.add_argument("payload")

    sub.add_parser("watch", help="subscribe to status stream")

    args = ap.parse_args()
    if not args.socket and not args.tcp:
        ap.error("Provide --socket or --tcp")
    try:
        if args.cmd == "state":
            r = await rpc_once(args.socket, args.tcp, "get_state")
            print(json.dumps(r, indent=2))
        elif args.cmd == "config":
            r = await rpc_once(args.socket, args.tcp, "get_config")
            print(json.dumps(r, indent=2))
        elif args.cmd == "set":
            r = await rpc_once(args.socket, args.tcp, "set_param", {"name": args.name, "value": args.value})
            print(r)
        elif args.cmd == "publish":
            r = await rpc_once(args.socket, args.tcp, "publish", {"topic": args.topic, "payload": args.payload})
            print(r)
        elif args.cmd == "watch":
            await watch(args.socket, args.tcp)
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    asyncio.run(main())
