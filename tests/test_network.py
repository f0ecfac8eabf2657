import ipaddress
import queue
import socket
import time

import pytest

from baanetkit.network import TcpClient, TcpServer, UdpEndpoint, local_ipv4_addresses

WAIT = 5.0


def _wait_for_clients(q, predicate):
    deadline = time.monotonic() + WAIT
    while time.monotonic() < deadline:
        try:
            clients = q.get(timeout=0.1)
        except queue.Empty:
            continue
        if predicate(clients):
            return clients
    raise AssertionError("client list never matched")


def _read_text(q, length):
    text = ""
    deadline = time.monotonic() + WAIT
    last = None
    while len(text) < length and time.monotonic() < deadline:
        try:
            data, ip, port = q.get(timeout=0.1)
        except queue.Empty:
            continue
        text += data
        last = (ip, port)
    return text, last


@pytest.fixture
def server_setup():
    clients_q = queue.Queue()
    data_q = queue.Queue()
    server = TcpServer(on_clients=clients_q.put, on_data=lambda *a: data_q.put(a))
    server.start("127.0.0.1", 0)
    yield server, clients_q, data_q
    server.stop()


def _free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_local_addresses_are_ipv4_and_unique():
    addresses = local_ipv4_addresses()
    assert "127.0.0.1" in addresses
    assert len(addresses) == len(set(addresses))
    assert all(isinstance(ipaddress.ip_address(a), ipaddress.IPv4Address) for a in addresses)


def test_server_tracks_client_and_exchanges_data(server_setup):
    server, clients_q, data_q = server_setup
    client_q = queue.Queue()
    with TcpClient(on_data=lambda *a: client_q.put(a)) as client:
        client.connect("127.0.0.1", server.address[1])
        cport = client.local_address[1]
        key = f"127.0.0.1:{cport}"
        clients = _wait_for_clients(clients_q, lambda c: key in c)
        assert clients[key] == cport
        assert server.clients == clients

        client.send("from client")
        text, peer = _read_text(data_q, len("from client"))
        assert text == "from client"
        assert peer == ("127.0.0.1", cport)

        assert server.send("from server", "127.0.0.1", cport) is True
        text, peer = _read_text(client_q, len("from server"))
        assert text == "from server"
        assert peer == ("127.0.0.1", server.address[1])

    _wait_for_clients(clients_q, lambda c: key not in c)
    assert key not in server.clients


def test_server_send_to_unknown_client(server_setup):
    server, _, _ = server_setup
    assert server.send("x", "127.0.0.1", 1) is False


def test_server_start_twice_raises(server_setup):
    server, _, _ = server_setup
    with pytest.raises(RuntimeError):
        server.start("127.0.0.1", 0)


def test_server_stop_clears_state(server_setup):
    server, clients_q, _ = server_setup
    client = TcpClient()
    client.connect("127.0.0.1", server.address[1])
    _wait_for_clients(clients_q, lambda c: len(c) == 1)
    server.stop()
    assert server.listening is False
    assert server.clients == {}
    client.close()


def test_server_timely_sends_repeatedly(server_setup):
    server, clients_q, _ = server_setup
    client_q = queue.Queue()
    with TcpClient(on_data=lambda *a: client_q.put(a)) as client:
        client.connect("127.0.0.1", server.address[1])
        cport = client.local_address[1]
        _wait_for_clients(clients_q, lambda c: f"127.0.0.1:{cport}" in c)
        server.start_timely("ping", 50, "127.0.0.1", cport)
        text, _ = _read_text(client_q, 3 * len("ping"))
        server.stop_timely()
        assert text.count("ping") >= 3


def test_timely_rejects_non_positive_interval(server_setup):
    server, _, _ = server_setup
    with pytest.raises(ValueError):
        server.start_timely("x", 0, "127.0.0.1", 1)


def test_client_connect_failure_raises():
    client = TcpClient()
    with pytest.raises(OSError):
        client.connect("127.0.0.1", _free_port(), timeout=1.0)
    assert client.connected is False


def test_client_send_when_not_connected():
    with pytest.raises(ConnectionError):
        TcpClient().send("x")


def test_udp_round_trip():
    received = queue.Queue()
    with UdpEndpoint(on_data=lambda *a: received.put(a)) as receiver, UdpEndpoint() as sender:
        receiver.bind("127.0.0.1", 0)
        sender.bind("127.0.0.1", 0)
        sent = sender.send_to("datagram", "127.0.0.1", receiver.address[1])
        assert sent == len("datagram")
        data, ip, port = received.get(timeout=WAIT)
        assert data == "datagram"
        assert (ip, port) == ("127.0.0.1", sender.address[1])


def test_udp_text_stops_at_nul():
    received = queue.Queue()
    with UdpEndpoint(on_data=lambda *a: received.put(a)) as receiver, UdpEndpoint() as sender:
        receiver.bind("127.0.0.1", 0)
        sender.send_to(b"abc\x00def", "127.0.0.1", receiver.address[1])
        data, _, _ = received.get(timeout=WAIT)
        assert data == "abc"


def test_udp_bind_twice_raises():
    with UdpEndpoint() as endpoint:
        endpoint.bind("127.0.0.1", 0)
        with pytest.raises(RuntimeError):
            endpoint.bind("127.0.0.1", 0)


def test_udp_close_unbinds():
    endpoint = UdpEndpoint()
    endpoint.bind("127.0.0.1", 0)
    endpoint.close()
    assert endpoint.bound is False
    with pytest.raises(RuntimeError):
        endpoint.address