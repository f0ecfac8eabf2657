# baanetkit

A small desktop network assistant for poking at TCP and UDP peers. The
window has three tabs:

- **TCP服务器 (TCP server)**: listen on a local address and port, see which
  clients are connected, send to the chosen client once or every N
  milliseconds, and watch what the clients send.
- **TCP客户端 (TCP client)**: connect to a server, send text (optionally
  as hex, with a trailing separator, and/or behind a four-byte big-endian
  length prefix) and watch the replies.
- **UDP连接 (UDP)**: bind a local address and port, send datagrams to any
  host and port (with the same hex, suffix and length-prefix options), and
  show what arrives.

Each receive area can show the time of arrival, the sender's IP, the
sender's port, and the data as hex bytes.

## Installing

```
pip install .
```

The window uses tkinter from the standard library. No other packages are
needed, but your Python must include tkinter.

## Running

```
baanetkit
```

This opens the window and runs until it is closed. Closing it stops the
server and closes the TCP connection and the UDP socket.

## Using the pieces from Python

The network classes and the formatting helpers work without the window.

```python
from baanetkit.codec import to_hex, frame_message, format_received
from baanetkit.network import TcpServer, TcpClient, UdpEndpoint, local_ipv4_addresses

to_hex("AB")                                # "41 42 "
frame_message("hi", length_prefix=True)     # b"\x00\x00\x00\x02hi"
format_received("hi", "10.0.0.5", 4000, show_ip=True, show_port=True)
                                            # "(10.0.0.5:4000):hi"

print(local_ipv4_addresses())

server = TcpServer(
    on_clients=lambda clients: print("clients:", clients),
    on_data=lambda data, ip, port: print(f"{ip}:{port} -> {data}"),
)
server.start("127.0.0.1", 9000)

client = TcpClient(on_data=lambda data, ip, port: print("reply:", data))
client.connect("127.0.0.1", 9000, 3.0)
client.send(frame_message("hello", length_prefix=False))

client.close()
server.stop()
```

### `baanetkit.codec`

- `to_hex(text)` turns each Latin-1 byte of the text into two lowercase hex
  digits followed by a space; characters outside Latin-1 become `?` first.
- `format_received(data, ip, port, show_time, show_ip, show_port, as_hex, clock)`
  builds a display line `<time><(peer)>:<data>`; with no prefix the data
  stands alone. The time is `HH:MM:SS`, taken from `clock` when given.
- `frame_message(data, length_prefix)` encodes text as UTF-8 (bytes pass
  through) and, when asked, puts a big-endian 32-bit length in front.

### `baanetkit.network`

Callbacks run on background threads. Received bytes are decoded as UTF-8,
with undecodable bytes replaced. All three classes are context managers.

- `local_ipv4_addresses()` returns this host's IPv4 addresses, `127.0.0.1`
  first, without duplicates.
- `TcpServer(on_clients, on_data)`: `start(host, port)` raises `OSError`
  if listening fails and `RuntimeError` if already listening; `stop()`
  closes the listener and every client. Clients are keyed `"ip:port"`;
  `on_clients` receives that mapping, sorted by key, whenever a client
  connects or leaves, and `clients` gives it on demand. `send(data, ip, port)`
  returns whether that client was found. `start_timely(data, interval_ms, ip, port)`
  repeats a send until `stop_timely()` or `stop()`; a non-positive interval
  raises `ValueError`. `listening` and `address` report the listener.
- `TcpClient(on_data)`: `connect(host, port, timeout)` (default 3 seconds)
  does nothing when already connected and raises `OSError` on failure;
  `send(data)` raises `ConnectionError` when not connected; `close()`;
  `connected` and `local_address`.
- `UdpEndpoint(on_data)`: `bind(host, port)` starts receiving and raises
  `OSError` on failure or `RuntimeError` if already bound; a received
  datagram is cut at its first NUL byte. `send_to(data, host, port)` works
  bound or not and returns the bytes sent. `close()`, `bound`, `address`.

### `baanetkit.app`

`App(root)` builds the window on a `tkinter.Tk`; `main(argv)` is the
`baanetkit` command. `split_client_key(text)` splits `"ip:port"` into
`(ip, port)` and raises `ValueError` otherwise; `client_summary(clients)`
gives the lines, choices and status text the server tab shows.

## What it does not do

There is no UDP multicast (no joining a group) and no sending from the
server to all clients at once; the server sends to one chosen client at a
time. Settings are not saved between runs.

## Tests

```
pip install ".[test]"
pytest
```