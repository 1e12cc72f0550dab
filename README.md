# pagedmem

`pagedmem` is the memory server of a small teaching operating-system
simulator. It holds a contiguous block of RAM split into fixed-size frames,
keeps a page table for every process, stores each process's pseudocode
instructions, and answers requests from three kinds of clients over TCP:

- **CPU**: fetch an instruction, ask for the page size, translate a page to a
  frame, resize a process, and read (`MEMORIA_MOV_IN`), write
  (`MEMORIA_MOV_OUT`) or copy (`MEMORIA_COPY_STRING`) bytes at physical
  addresses.
- **Kernel**: create a process from a pseudocode file, and release a
  process's frames when it ends.
- **I/O interfaces** (any number of them): write text read from STDIN into a
  process's memory (`IO_STDIN_READ_FS`), and read memory back as a string
  (`IO_STDOUT_WRITE_FS`, `IO_FS_WRITE_FS`).

The package has no dependencies outside the standard library.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Running the server

```
pagedmem memoria.config
```

The configuration path is optional and defaults to `memoria.config`. Log
records go to the console and to a file, `memoria.log` unless another is
given with `--log-file`:

```
pagedmem memoria.config --log-file server.log
```

The configuration file is a plain `KEY=value` file; blank lines and lines
starting with `#` are ignored:

```
PUERTO_ESCUCHA=8002
TAM_MEMORIA=4096
TAM_PAGINA=32
PATH_INSTRUCCIONES=/home/user/scripts/
RETARDO_RESPUESTA=1000
```

| Key                  | Meaning                                                         |
|----------------------|-----------------------------------------------------------------|
| `PUERTO_ESCUCHA`     | TCP port the server listens on                                  |
| `TAM_MEMORIA`        | size of RAM in bytes                                            |
| `TAM_PAGINA`         | size of a page (and a frame) in bytes; must be positive         |
| `PATH_INSTRUCCIONES` | prefix joined in front of the pseudocode paths the kernel sends |
| `RETARDO_RESPUESTA`  | delay in milliseconds before answering each CPU request         |

A missing file, a missing key or a non-integer size is reported and the
command exits with status 1. The number of frames is
`TAM_MEMORIA // TAM_PAGINA` (`MemoryConfig.frame_count`).

The server first waits for the CPU to connect and then for the kernel. After
that it accepts I/O interfaces in the background and serves each one in its
own thread. It stops when the CPU disconnects. While it runs, it writes
text snapshots of RAM, the frame table and the process list into the
current directory after the operations that change them.

## Wire format

Every message is a packet made of a 4-byte operation code, a 4-byte payload
size, and the payload. The payload is a sequence of length-prefixed fields,
each of which is an integer, a NUL-terminated string or raw bytes. The
operation codes are the members of `pagedmem.codes.OpCode`.

`pagedmem.buffer.Buffer` builds and reads such payloads, and
`pagedmem.buffer.Packet` pairs a code with a buffer:

```python
from pagedmem.buffer import Buffer, Packet
from pagedmem.codes import OpCode

buffer = Buffer()
buffer.add_int(7)
buffer.add_string("SET AX 1")

assert buffer.take_int() == 7
assert buffer.take_string() == "SET AX 1"

raw = Packet(OpCode.RESIZE_OK).serialize()   # code and an empty payload
```

Taking a field from an empty or truncated buffer raises `BufferEmptyError`.
`CpuRegisters` and `Pcb` read themselves from a buffer with `from_buffer`.

`pagedmem.net` has the socket helpers (`start_server`, `wait_client`,
`connect`, `receive_operation`, `receive_buffer`, `send_packet` and the
handshake functions), and `pagedmem.messages` the helpers that build and send
the kernel's and CPU's messages (`send_process`, `send_cpu_interrupt`,
`request_instruction`, `send_instruction`, `send_ok`, ...).

## Paged memory

`pagedmem.memory.Memory(memory_size, page_size)` holds RAM, the frame table
and the process list:

- `create_process`, `resize_process` and `finish_process` manage a process's
  page table. Growing a process past the free frames raises
  `OutOfMemoryError` and leaves the table as it was; an unknown pid raises
  `UnknownProcessError`.
- `frame_for` translates a page number to a frame number, raising
  `IndexError` for a page the process does not have.
- `read` and `write` copy bytes at a physical address, following the
  process's page table across page boundaries. When the process's pages
  cannot hold the whole request they raise `IndexError`, and `write` changes
  nothing.
- `dump_ram`, `dump_frames` and `dump_processes` write human-readable
  snapshots to text files.

`pagedmem.instructions.InstructionStore` loads a pseudocode file, one
instruction per line, and returns the line at a program counter with `get`.

`pagedmem.handlers.MemoryService` ties a `Memory` and an `InstructionStore`
together and serves a socket with `handle_cpu`, `handle_kernel` or
`handle_io`.

## What this package does not do

This is only the memory server. It does not contain a kernel, a CPU or any
I/O interface: there is no scheduler, no instruction interpreter and no
console. The message helpers in `pagedmem.messages` let such clients be
written, but none is included. Memory contents, page tables and loaded
instructions live only in the running process and are not saved anywhere
apart from the debugging snapshots.