"""
Shared test fixtures for the ChainGuard test suite.

Provides sample Solidity contracts (vulnerable and safe variants), an
isolated config file location, and small helpers for picking findings out of
analyzer outcomes.
"""

from pathlib import Path

import pytest


# ── Sample Solidity contract source ─────────────────────────────

# Line 15 calls out before line 16 writes; setFee has no guard; pre-0.8 math.
VULNERABLE_BANK = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.7.6;

contract VulnerableBank {
    mapping(address => uint256) public balances;
    address public owner;
    uint256 public fee;

    function deposit() public payable {
        balances[msg.sender] = balances[msg.sender] + msg.value;
    }

    function withdraw(uint256 amount) public {
        require(balances[msg.sender] >= amount);
        msg.sender.call{value: amount}("");
        balances[msg.sender] -= amount;
    }

    function setFee(uint256 newFee) public {
        fee = newFee;
    }
}
"""

SAFE_BANK = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.20;

import "@openzeppelin/contracts/security/ReentrancyGuard.sol";

contract SafeBank is ReentrancyGuard {
    mapping(address => uint256) public balances;
    address public owner;

    modifier onlyOwner() {
        require(msg.sender == owner, "not owner");
        _;
    }

    constructor() {
        owner = msg.sender;
    }

    function deposit() external payable {
        balances[msg.sender] += msg.value;
    }

    function claim(uint256 amount) external nonReentrant {
        require(balances[msg.sender] >= amount, "insufficient balance");
        balances[msg.sender] -= amount;
        (bool success, ) = msg.sender.call{value: amount}("");
        require(success, "transfer failed");
    }
}
"""

UNGUARDED_SELF_DESTRUCT = """\
pragma solidity ^0.8.0;

contract Killable {
    function kill(address payable to) public {
        selfdestruct(to);
    }
}
"""

GUARDED_SELF_DESTRUCT = """\
pragma solidity ^0.8.0;

contract Killable {
    address owner;

    modifier onlyOwner() {
        require(msg.sender == owner);
        _;
    }

    function kill(address payable to) public onlyOwner {
        selfdestruct(to);
    }
}
"""

SAMPLE_VYPER = """\
# @version 0.3.9

event Transfer:
    sender: indexed(address)
    amount: uint256

@external
def transfer(to: address, amount: uint256) -> bool:
    return True

@internal
def _check(amount: uint256):
    pass
"""

SAMPLE_RUST = """\
use anchor_lang::prelude::*;

mod vault {
    pub struct Vault {
        pub balance: u64,
    }

    pub fn deposit(ctx: Context<Deposit>, amount: u64) -> Result<()> {
        Ok(())
    }
}
"""


def findings_of_type(outcome, finding_type):
    """Vulnerabilities of one type from an AnalysisOutcome."""
    return [f for f in outcome.vulnerabilities if f.type == finding_type]


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def vulnerable_source():
    return VULNERABLE_BANK


@pytest.fixture
def safe_source():
    return SAFE_BANK


@pytest.fixture
def isolated_env(monkeypatch):
    """Make sure environment overrides from the host do not leak in."""
    monkeypatch.delenv("CHAINGUARD_LOG_LEVEL", raising=False)
    monkeypatch.delenv("CHAINGUARD_REPORTS_DIR", raising=False)


@pytest.fixture
def config_file(tmp_path, isolated_env) -> Path:
    """Path for a config file that does not exist yet."""
    return tmp_path / "config.yaml"


@pytest.fixture
def vulnerable_contract_file(tmp_path) -> Path:
    path = tmp_path / "VulnerableBank.sol"
    path.write_text(VULNERABLE_BANK)
    return path


@pytest.fixture
def safe_contract_file(tmp_path) -> Path:
    path = tmp_path / "SafeBank.sol"
    path.write_text(SAFE_BANK)
    return path
