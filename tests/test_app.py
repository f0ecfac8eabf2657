import pytest

from baanetkit.app import CLIENTS_HEADER, client_summary, main, split_client_key


def test_split_client_key_returns_ip_and_port():
    assert split_client_key("192.168.1.5:8080") == ("192.168.1.5", 8080)


def test_split_client_key_round_trips_with_server_key_format():
    ip, port = "10.0.0.7", 40123
    assert split_client_key(f"{ip}:{port}") == (ip, port)


@pytest.mark.parametrize("text", ["", "no-port", "10.0.0.1:", ":80", "10.0.0.1:abc"])
def test_split_client_key_rejects_malformed(text):
    with pytest.raises(ValueError):
        split_client_key(text)


def test_client_summary_empty():
    summary = client_summary({})
    assert summary.lines == [CLIENTS_HEADER]
    assert summary.choices == []
    assert summary.status == "已连接设备0个"


def test_client_summary_header_is_first_line():
    summary = client_summary({"10.0.0.1:5000": 5000})
    assert summary.lines[0] == "已连接上服务器的设备有："


def test_client_summary_numbers_devices_in_key_order():
    clients = {"10.0.0.2:6000": 6000, "10.0.0.1:5000": 5000}
    summary = client_summary(clients)
    assert summary.choices == ["10.0.0.1:5000", "10.0.0.2:6000"]
    assert summary.lines[1:] == ["设备1(10.0.0.1:5000)", "设备2(10.0.0.2:6000)"]
    assert summary.status == "已连接设备2个"


def test_client_summary_choices_split_back_to_ports():
    clients = {"127.0.0.1:1234": 1234, "127.0.0.1:4321": 4321}
    summary = client_summary(clients)
    assert {split_client_key(choice)[1] for choice in summary.choices} == set(clients.values())
    assert len(summary.lines) == len(clients) + 1


def test_main_rejects_unknown_option():
    with pytest.raises(SystemExit) as excinfo:
        main(["--no-such-option"])
    assert excinfo.value.code == 2