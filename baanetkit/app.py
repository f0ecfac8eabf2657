"""Desktop window for the TCP server, TCP client and UDP tools."""

from __future__ import annotations

import argparse
import queue
import tkinter as tk
from dataclasses import dataclass, field
from tkinter import ttk
from typing import Callable, Dict, List, Optional, Tuple

from .codec import format_received, frame_message, to_hex
from .network import TcpClient, TcpServer, UdpEndpoint, local_ipv4_addresses

TITLE = "BaaNetKit"
ANY_ADDRESS = "0.0.0.0"
CLIENTS_HEADER = "已连接上服务器的设备有："
DEFAULT_INTERVAL_MS = 1000
DEFAULT_PORT = 8080
_POLL_MS = 50


@dataclass(frozen=True)
class ClientSummary:
    """What the server page shows about its connected clients."""

    lines: List[str] = field(default_factory=list)
    choices: List[str] = field(default_factory=list)
    status: str = ""


def split_client_key(text: str) -> Tuple[str, int]:
    """Split an ``"ip:port"`` client key into its address and port."""
    ip, sep, port = text.rpartition(":")
    if not sep or not ip or not port:
        raise ValueError(f"not an ip:port pair: {text!r}")
    try:
        number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in {text!r}") from None
    return ip, number


def client_summary(clients: Dict[str, int]) -> ClientSummary:
    """Describe the connected clients, ordered by key."""
    keys = sorted(clients)
    lines = [CLIENTS_HEADER]
    lines.extend(f"设备{number}({key})" for number, key in enumerate(keys, start=1))
    return ClientSummary(lines=lines, choices=keys, status=f"已连接设备{len(keys)}个")


def _text_get(widget: tk.Text) -> str:
    return widget.get("1.0", "end-1c")


def _text_clear(widget: tk.Text) -> None:
    widget.delete("1.0", "end")


def _text_append(widget: tk.Text, line: str) -> None:
    widget.insert("end", line + "\n")
    widget.see("end")


def _int_value(var: tk.Variable) -> Optional[int]:
    try:
        return int(var.get())
    except (tk.TclError, ValueError):
        return None


@dataclass
class _ReceivePanel:
    text: tk.Text
    as_hex: tk.BooleanVar
    show_ip: tk.BooleanVar
    show_port: tk.BooleanVar
    show_time: tk.BooleanVar

    def show(self, data: str, ip: str, port: int) -> None:
        line = format_received(
            data,
            ip,
            port,
            show_time=self.show_time.get(),
            show_ip=self.show_ip.get(),
            show_port=self.show_port.get(),
            as_hex=self.as_hex.get(),
        )
        _text_append(self.text, line)

    def clear(self) -> None:
        _text_clear(self.text)


class App:
    """The main window: one page each for TCP server, TCP client and UDP."""

    def __init__(self, root: tk.Tk) -> None:
        self.root = root
        self._events: "queue.Queue[Tuple[Callable[..., None], tuple]]" = queue.Queue()
        self.server = TcpServer(
            on_clients=self._deferred(self._on_clients),
            on_data=self._deferred(self._on_server_data),
        )
        self.client = TcpClient(on_data=self._deferred(self._on_client_data))
        self.udp = UdpEndpoint(on_data=self._deferred(self._on_udp_data))

        self._place_window()
        notebook = ttk.Notebook(root)
        notebook.pack(fill="both", expand=True)
        pages = [("TCP服务器", self._build_server), ("TCP客户端", self._build_client),
                 ("UDP连接", self._build_udp)]
        for title, build in pages:
            page = ttk.Frame(notebook)
            build(page)
            notebook.add(page, text=title)
        notebook.select(0)

        self._refresh_local_ips()
        root.protocol("WM_DELETE_WINDOW", self.close)
        root.after(_POLL_MS, self._poll)

    # -- plumbing ---------------------------------------------------------

    def _deferred(self, handler: Callable[..., None]) -> Callable[..., None]:
        def post(*args) -> None:
            self._events.put((handler, args))

        return post

    def _poll(self) -> None:
        while True:
            try:
                handler, args = self._events.get_nowait()
            except queue.Empty:
                break
            handler(*args)
        self.root.after(_POLL_MS, self._poll)

    def _place_window(self) -> None:
        width = self.root.winfo_screenwidth()
        height = self.root.winfo_screenheight()
        x = width // 2 - width // 4
        y = int(height / 2 - height * 0.3)
        self.root.title(TITLE)
        self.root.geometry(f"{int(width * 0.48)}x{int(height * 0.6)}+{x}+{y}")
        self.root.resizable(False, False)

    def _check(self, parent: tk.Widget, text: str) -> tk.BooleanVar:
        var = tk.BooleanVar(value=False)
        ttk.Checkbutton(parent, text=text, variable=var).pack(side="left", padx=2)
        return var

    def _receive_panel(self, parent: tk.Widget, clear_text: str) -> _ReceivePanel:
        ttk.Label(parent, text="接收区").pack(anchor="w", padx=6)
        text = tk.Text(parent, height=10)
        text.pack(fill="both", expand=True, padx=6)
        options = ttk.Frame(parent)
        options.pack(fill="x", padx=6, pady=4)
        panel = _ReceivePanel(
            text=text,
            as_hex=self._check(options, "16进制"),
            show_ip=self._check(options, "显示IP"),
            show_port=self._check(options, "显示端口"),
            show_time=self._check(options, "显示时间"),
        )
        ttk.Button(options, text=clear_text, command=panel.clear).pack(side="right")
        return panel

    def _refresh_local_ips(self) -> None:
        addresses = [ANY_ADDRESS, *local_ipv4_addresses()]
        for combo in (self.server_ip, self.udp_ip):
            combo["values"] = addresses
            combo.set(ANY_ADDRESS)

    # -- TCP server page --------------------------------------------------

    def _build_server(self, page: ttk.Frame) -> None:
        top = ttk.Frame(page)
        top.pack(fill="x", padx=6, pady=6)
        ttk.Label(top, text="本地IP").pack(side="left")
        self.server_ip = ttk.Combobox(top, width=16)
        self.server_ip.pack(side="left", padx=4)
        ttk.Label(top, text="本地端口").pack(side="left")
        self.server_port = tk.IntVar(value=DEFAULT_PORT)
        self.server_port_box = ttk.Spinbox(
            top, from_=0, to=65535, width=7, textvariable=self.server_port
        )
        self.server_port_box.pack(side="left", padx=4)
        self.btn_listen = ttk.Button(top, text="开始监听", command=self._start_listen)
        self.btn_listen.pack(side="left", padx=2)
        self.btn_stop_listen = ttk.Button(
            top, text="关闭监听", command=self._stop_listen, state="disabled"
        )
        self.btn_stop_listen.pack(side="left", padx=2)
        self.server_status = ttk.Label(top, text="未连接")
        self.server_status.pack(side="left", padx=8)

        chooser = ttk.Frame(page)
        chooser.pack(fill="x", padx=6)
        ttk.Label(chooser, text="选择客户端").pack(side="left")
        self.client_choice = ttk.Combobox(chooser, width=24, state="readonly")
        self.client_choice.pack(side="left", padx=4)
        ttk.Label(page, text="客户端").pack(anchor="w", padx=6)
        self.client_info = tk.Text(page, height=4)
        self.client_info.pack(fill="x", padx=6)

        ttk.Label(page, text="发送区").pack(anchor="w", padx=6)
        self.server_send_text = tk.Text(page, height=5)
        self.server_send_text.pack(fill="x", padx=6)
        options = ttk.Frame(page)
        options.pack(fill="x", padx=6, pady=4)
        self.server_timely = tk.BooleanVar(value=False)
        ttk.Checkbutton(
            options, text="定时发送", variable=self.server_timely,
            command=self._toggle_timely,
        ).pack(side="left")
        self.server_interval = tk.IntVar(value=DEFAULT_INTERVAL_MS)
        ttk.Spinbox(
            options, from_=1, to=3600000, width=8, textvariable=self.server_interval
        ).pack(side="left", padx=2)
        ttk.Label(options, text="ms").pack(side="left")
        self.server_send_hex = self._check(options, "16进制")
        ttk.Button(options, text="发送", command=self._server_send).pack(side="right")
        ttk.Button(
            options, text="清除", command=lambda: _text_clear(self.server_send_text)
        ).pack(side="right", padx=2)

        self.server_receive = self._receive_panel(page, "清除")

    def _start_listen(self) -> None:
        port = _int_value(self.server_port)
        if port is None:
            self.server_status.config(text="监听失败")
            return
        try:
            self.server.start(self.server_ip.get() or ANY_ADDRESS, port)
        except (OSError, OverflowError, RuntimeError):
            self.server_status.config(text="监听失败")
            return
        self.server_status.config(text="监听成功")
        _text_clear(self.client_info)
        _text_append(self.client_info, CLIENTS_HEADER)
        self.btn_listen.config(state="disabled")
        self.btn_stop_listen.config(state="normal")
        self.server_ip.config(state="disabled")
        self.server_port_box.config(state="disabled")

    def _stop_listen(self) -> None:
        self.server.stop()
        self.server_timely.set(False)
        self.btn_listen.config(state="normal")
        self.btn_stop_listen.config(state="disabled")
        self.server_ip.config(state="normal")
        self.server_port_box.config(state="normal")

    def _on_clients(self, clients: Dict[str, int]) -> None:
        summary = client_summary(clients)
        current = self.client_choice.get()
        _text_clear(self.client_info)
        for line in summary.lines:
            _text_append(self.client_info, line)
        self.client_choice["values"] = summary.choices
        if current in summary.choices:
            self.client_choice.set(current)
        else:
            self.client_choice.set(summary.choices[0] if summary.choices else "")
        self.server_status.config(text=summary.status)

    def _on_server_data(self, data: str, ip: str, port: int) -> None:
        self.server_receive.show(data, ip, port)

    def _chosen_client(self) -> Optional[Tuple[str, int]]:
        info = self.client_choice.get()
        if not info:
            return None
        try:
            return split_client_key(info)
        except ValueError:
            return None

    def _server_payload(self) -> str:
        data = _text_get(self.server_send_text)
        return to_hex(data) if self.server_send_hex.get() else data

    def _server_send(self) -> None:
        target = self._chosen_client()
        if target is None:
            return
        try:
            self.server.send(self._server_payload(), *target)
        except OSError:
            self.server_status.config(text="发送失败")

    def _toggle_timely(self) -> None:
        target = self._chosen_client()
        if target is None:
            return
        if not self.server_timely.get():
            self.server.stop_timely()
            return
        interval = _int_value(self.server_interval)
        try:
            if interval is None:
                raise ValueError("no interval")
            self.server.start_timely(self._server_payload(), interval, *target)
        except ValueError:
            self.server_timely.set(False)

    # -- TCP client page --------------------------------------------------

    def _build_client(self, page: ttk.Frame) -> None:
        top = ttk.Frame(page)
        top.pack(fill="x", padx=6, pady=6)
        ttk.Label(top, text="服务器IP").pack(side="left")
        self.tcp_dst_ip = tk.StringVar(value="127.0.0.1")
        ttk.Entry(top, width=16, textvariable=self.tcp_dst_ip).pack(side="left", padx=4)
        ttk.Label(top, text="服务器端口").pack(side="left")
        self.tcp_dst_port = tk.IntVar(value=DEFAULT_PORT)
        ttk.Spinbox(
            top, from_=0, to=65535, width=7, textvariable=self.tcp_dst_port
        ).pack(side="left", padx=4)
        self.btn_connect = ttk.Button(top, text="连接", command=self._tcp_connect)
        self.btn_connect.pack(side="left", padx=2)
        self.btn_disconnect = ttk.Button(
            top, text="断开连接", command=self._tcp_disconnect, state="disabled"
        )
        self.btn_disconnect.pack(side="left", padx=2)
        self.tcp_status = ttk.Label(page, text="连接信息")
        self.tcp_status.pack(anchor="w", padx=6)

        ttk.Label(page, text="发送区").pack(anchor="w", padx=6)
        self.tcp_send_text = tk.Text(page, height=5)
        self.tcp_send_text.pack(fill="x", padx=6)
        options = ttk.Frame(page)
        options.pack(fill="x", padx=6, pady=4)
        self.tcp_send_hex = self._check(options, "16进制")
        self.tcp_length_prefix = self._check(options, "长度前缀")
        self.tcp_end_sign_on = self._check(options, "尾部分隔")
        self.tcp_end_sign = tk.StringVar(value="")
        ttk.Entry(options, width=6, textvariable=self.tcp_end_sign).pack(side="left")
        ttk.Button(options, text="发送", command=self._tcp_send).pack(side="right")
        ttk.Button(
            options, text="清空", command=lambda: _text_clear(self.tcp_send_text)
        ).pack(side="right", padx=2)

        self.tcp_receive = self._receive_panel(page, "清空")

    def _tcp_connect(self) -> None:
        port = _int_value(self.tcp_dst_port)
        if port is None:
            self.tcp_status.config(text="连接失败")
            return
        try:
            self.client.connect(self.tcp_dst_ip.get(), port)
        except (OSError, OverflowError):
            self.tcp_status.config(text="连接失败")
            return
        self.tcp_status.config(text="连接成功")
        self.btn_connect.config(state="disabled")
        self.btn_disconnect.config(state="normal")

    def _tcp_disconnect(self) -> None:
        self.client.close()
        self.tcp_status.config(text="连接信息")
        self.btn_connect.config(state="normal")
        self.btn_disconnect.config(state="disabled")

    def _on_client_data(self, data: str, ip: str, port: int) -> None:
        self.tcp_receive.show(data, ip, port)

    def _tcp_send(self) -> None:
        data = _text_get(self.tcp_send_text)
        if not data:
            return
        if self.tcp_send_hex.get():
            data = to_hex(data)
        if self.tcp_end_sign_on.get():
            data += self.tcp_end_sign.get()
        try:
            self.client.send(frame_message(data, self.tcp_length_prefix.get()))
        except OSError:
            self.tcp_status.config(text="提示：服务器断开连接")
            self.btn_connect.config(state="normal")
            self.btn_disconnect.config(state="disabled")

    # -- UDP page ---------------------------------------------------------

    def _build_udp(self, page: ttk.Frame) -> None:
        top = ttk.Frame(page)
        top.pack(fill="x", padx=6, pady=6)
        ttk.Label(top, text="本地IP").pack(side="left")
        self.udp_ip = ttk.Combobox(top, width=16)
        self.udp_ip.pack(side="left", padx=4)
        ttk.Label(top, text="本地端口").pack(side="left")
        self.udp_port = tk.IntVar(value=DEFAULT_PORT)
        ttk.Spinbox(
            top, from_=0, to=65535, width=7, textvariable=self.udp_port
        ).pack(side="left", padx=4)
        self.btn_bind = ttk.Button(top, text="开始绑定", command=self._udp_bind)
        self.btn_bind.pack(side="left", padx=2)
        self.btn_unbind = ttk.Button(
            top, text="结束绑定", command=self._udp_unbind, state="disabled"
        )
        self.btn_unbind.pack(side="left", padx=2)
        self.udp_status = ttk.Label(top, text="未绑定端口")
        self.udp_status.pack(side="left", padx=8)

        target = ttk.Frame(page)
        target.pack(fill="x", padx=6)
        ttk.Label(target, text="目标IP").pack(side="left")
        self.udp_dst_ip = tk.StringVar(value="127.0.0.1")
        ttk.Entry(target, width=16, textvariable=self.udp_dst_ip).pack(side="left", padx=4)
        ttk.Label(target, text="目标端口").pack(side="left")
        self.udp_dst_port = tk.IntVar(value=DEFAULT_PORT)
        ttk.Spinbox(
            target, from_=0, to=65535, width=7, textvariable=self.udp_dst_port
        ).pack(side="left", padx=4)

        ttk.Label(page, text="发送区").pack(anchor="w", padx=6)
        self.udp_send_text = tk.Text(page, height=5)
        self.udp_send_text.pack(fill="x", padx=6)
        options = ttk.Frame(page)
        options.pack(fill="x", padx=6, pady=4)
        self.udp_send_hex = self._check(options, "16进制")
        self.udp_length_prefix = self._check(options, "长度前缀")
        self.udp_end_sign_on = self._check(options, "符号后缀")
        self.udp_end_sign = tk.StringVar(value="")
        ttk.Entry(options, width=6, textvariable=self.udp_end_sign).pack(side="left")
        ttk.Button(options, text="发送", command=self._udp_send).pack(side="right")
        ttk.Button(
            options, text="清空", command=lambda: _text_clear(self.udp_send_text)
        ).pack(side="right", padx=2)

        self.udp_receive = self._receive_panel(page, "清空")

    def _udp_bind(self) -> None:
        port = _int_value(self.udp_port)
        if port is None:
            return
        host = self.udp_ip.get() or "127.0.0.1"
        try:
            self.udp.bind(host, port)
        except (OSError, OverflowError, RuntimeError):
            self.udp_status.config(text="绑定失败")
            return
        self.udp_status.config(text="已绑定端口")
        self.btn_bind.config(state="disabled")
        self.btn_unbind.config(state="normal")

    def _udp_unbind(self) -> None:
        self.btn_bind.config(state="normal")
        self.btn_unbind.config(state="disabled")
        self.udp.close()
        self.udp_status.config(text="未绑定端口")

    def _on_udp_data(self, data: str, ip: str, port: int) -> None:
        self.udp_receive.show(data, ip, port)

    def _udp_send(self) -> None:
        data = _text_get(self.udp_send_text)
        if not data:
            return
        port = _int_value(self.udp_dst_port)
        if port is None:
            return
        if self.udp_end_sign_on.get():
            data += self.udp_end_sign.get()
        if self.udp_send_hex.get():
            data = to_hex(data)
        try:
            self.udp.send_to(
                frame_message(data, self.udp_length_prefix.get()),
                self.udp_dst_ip.get(),
                port,
            )
        except (OSError, OverflowError):
            self.udp_status.config(text="发送失败")

    # -- lifetime ---------------------------------------------------------

    def close(self) -> None:
        """Release every socket and close the window."""
        self.server.stop()
        self.client.close()
        self.udp.close()
        self.root.destroy()


def main(argv: Optional[List[str]] = None) -> int:
    """Open the window and run until it is closed."""
    parser = argparse.ArgumentParser(prog="baanetkit", description="TCP/UDP debugging tool")
    parser.parse_args(argv)
    root = tk.Tk()
    App(root)
    root.mainloop()
    return 0