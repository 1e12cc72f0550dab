import pytest

from pagedmem.codes import OpCode, describe_handshake


@pytest.mark.parametrize(
    "code",
    [
        OpCode.HANDSHAKE_OK,
        OpCode.MENSAJE_A_MEMORIA,
        OpCode.HANDSHAKE_KERNEL,
        OpCode.HANDSHAKE_ENTRADASALIDA,
        OpCode.HANDSHAKE_MEMORIA,
        OpCode.HANDSHAKE_CPU,
    ],
)
def test_describe_handshake_returns_name(code):
    assert describe_handshake(code) == code.name


def test_describe_handshake_accepts_plain_int():
    assert describe_handshake(int(OpCode.HANDSHAKE_KERNEL)) == "HANDSHAKE_KERNEL"
    assert describe_handshake(int(OpCode.HANDSHAKE_CPU)) == "HANDSHAKE_CPU"


@pytest.mark.parametrize(
    "code", [OpCode.MEMORIA_ERROR, OpCode.CPU_SOLICITA_INSTRUCCION, OpCode.NUEVA_CONEXION_IO]
)
def test_describe_handshake_rejects_other_codes(code):
    with pytest.raises(ValueError):
        describe_handshake(code)


@pytest.mark.parametrize("code", [-1, 1000])
def test_describe_handshake_rejects_unknown_values(code):
    with pytest.raises(ValueError):
        describe_handshake(code)


def test_handshake_descriptions_follow_wire_values():
    names = [describe_handshake(value) for value in range(6)]
    assert names == [
        "HANDSHAKE_OK",
        "MENSAJE_A_MEMORIA",
        "HANDSHAKE_KERNEL",
        "HANDSHAKE_ENTRADASALIDA",
        "HANDSHAKE_MEMORIA",
        "HANDSHAKE_CPU",
    ]


def test_first_code_after_handshakes_is_not_described():
    with pytest.raises(ValueError):
        describe_handshake(6)