# ================================================================================
# Wait Helpers Module
# ================================================================================
#
# Dock Health does some work asynchronously: a webhook becomes verified only
# after the callback server answered its challenge, and developer events and
# delivery attempts show up a little after the change that caused them.
#
# Key Features:
#   - Fixed sleep for the simple cases
#   - Exponential backoff with jitter
#   - Named wait scenarios
#   - Allure integration for step reporting
#
# Usage:
#   sleep(5)
#   wait_for_webhook_verified(client, f"/api/v1/webhook/{webhook_id}")
#   result = wait_with_backoff(check_function, scenario="event_delivery")
#
# ================================================================================

import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple, TypeVar

import allure
from loguru import logger


T = TypeVar('T')


# Time given to Dock Health to call the callback server after a webhook
# is created or updated.
WEBHOOK_VERIFICATION_SECONDS = 5


@dataclass
class WaitConfig:
    """
    Configuration for wait operations.

    Attributes:
        initial_interval: Initial wait interval in seconds
        multiplier: Multiplier for exponential backoff
        max_interval: Maximum interval between attempts
        timeout: Total timeout in seconds
        jitter: Add random jitter to prevent thundering herd
    """
    initial_interval: float = 1.0
    multiplier: float = 2.0
    max_interval: float = 30.0
    timeout: float = 120.0
    jitter: bool = True


WAIT_SCENARIOS: Dict[str, WaitConfig] = {
    "default": WaitConfig(),

    # Internal API state
    "fast": WaitConfig(
        initial_interval=0.5,
        multiplier=1.5,
        max_interval=5.0,
        timeout=30.0
    ),

    # Challenge answered by the callback server
    "webhook_verification": WaitConfig(
        initial_interval=2.0,
        multiplier=1.5,
        max_interval=10.0,
        timeout=60.0
    ),

    # Developer events / delivery attempts being recorded
    "event_delivery": WaitConfig(
        initial_interval=2.0,
        multiplier=1.5,
        max_interval=10.0,
        timeout=120.0
    ),
}


class WaitTimeoutError(Exception):
    """Raised when a wait operation times out."""
    pass


def sleep(seconds: float) -> None:
    """Block for ``seconds``."""
    with allure.step(f"Sleeping {seconds}s"):
        logger.debug(f"Sleeping {seconds}s")
        time.sleep(seconds)


def get_wait_config(scenario: str) -> WaitConfig:
    """
    Get wait configuration for a specific scenario.

    Returns:
        WaitConfig for the scenario, or default if not found
    """
    return WAIT_SCENARIOS.get(scenario, WAIT_SCENARIOS["default"])


def calculate_next_interval(
    current_interval: float,
    config: WaitConfig
) -> float:
    """
    Calculate the next wait interval with exponential backoff and jitter.
    """
    next_interval = min(
        current_interval * config.multiplier,
        config.max_interval
    )

    if config.jitter:
        # +/- 25%
        jitter_factor = 0.75 + (random.random() * 0.5)
        next_interval = next_interval * jitter_factor

    return next_interval


@allure.step("Waiting with backoff: {description}")
def wait_with_backoff(
    check_fn: Callable[[], Tuple[bool, T]],
    scenario: str = "default",
    description: str = "Waiting for condition",
    config: WaitConfig = None
) -> T:
    """
    Wait for a condition with exponential backoff.

    Args:
        check_fn: Function that returns (success: bool, result: T)
        scenario: Predefined scenario name for configuration
        description: Human-readable description for logging
        config: Optional custom WaitConfig (overrides scenario)

    Returns:
        Result from check_fn when successful

    Raises:
        WaitTimeoutError: If timeout is reached without success

    Example:
        def check_verified():
            webhook = client.get(f"/api/v1/webhook/{webhook_id}").json()
            return bool(webhook.get("verified")), webhook

        webhook = wait_with_backoff(
            check_verified,
            scenario="webhook_verification",
            description="Waiting for webhook verification"
        )
    """
    if config is None:
        config = get_wait_config(scenario)

    start_time = time.time()
    current_interval = config.initial_interval
    attempt = 0
    last_result = None
    last_error = None

    logger.info(
        f"Starting wait: {description} "
        f"(timeout={config.timeout}s, scenario={scenario})"
    )

    while True:
        elapsed = time.time() - start_time

        if elapsed >= config.timeout:
            error_msg = (
                f"Timeout after {elapsed:.1f}s waiting for: {description}. "
                f"Last result: {last_result}, Last error: {last_error}"
            )
            logger.error(error_msg)
            raise WaitTimeoutError(error_msg)

        attempt += 1

        try:
            success, result = check_fn()
            last_result = result

            if success:
                logger.info(
                    f"Wait successful after {attempt} attempts "
                    f"({elapsed:.1f}s): {description}"
                )
                return result

            logger.debug(
                f"Attempt {attempt}: condition not met. "
                f"Result: {result}. Waiting {current_interval:.1f}s..."
            )

        except Exception as e:
            last_error = str(e)
            logger.warning(
                f"Attempt {attempt} failed with error: {e}. "
                f"Waiting {current_interval:.1f}s..."
            )

        time.sleep(current_interval)
        current_interval = calculate_next_interval(current_interval, config)


def wait_for_webhook_verified(
    http_client,
    webhook_path: str,
    expected: bool = True,
    scenario: str = "webhook_verification"
) -> Dict[str, Any]:
    """
    Wait until a webhook's ``verified`` flag matches ``expected``.

    Args:
        http_client: HttpClient carrying the caller's headers
        webhook_path: e.g. "/api/v1/webhook/<id>"
        expected: Target verification state
        scenario: Wait scenario name

    Returns:
        The webhook JSON once it matches
    """
    def check_verified() -> Tuple[bool, Dict[str, Any]]:
        response = http_client.get(webhook_path)

        if response.status_code != 200:
            raise Exception(f"Failed to get webhook: {response.status_code}")

        webhook = response.json()
        return bool(webhook.get("verified")) == expected, webhook

    with allure.step(f"Waiting for webhook verified={expected}"):
        return wait_with_backoff(
            check_fn=check_verified,
            scenario=scenario,
            description=f"Webhook {webhook_path} verified={expected}"
        )


def wait_for_count_increase(
    fetch_fn: Callable[[], int],
    baseline: int,
    scenario: str = "event_delivery"
) -> int:
    """
    Wait until ``fetch_fn()`` returns more than ``baseline``.

    Returns:
        The new count
    """
    def check_count() -> Tuple[bool, int]:
        count = fetch_fn()
        return count > baseline, count

    with allure.step(f"Waiting for count to exceed {baseline}"):
        return wait_with_backoff(
            check_fn=check_count,
            scenario=scenario,
            description=f"Count > {baseline}"
        )


__all__ = [
    "WAIT_SCENARIOS",
    "WEBHOOK_VERIFICATION_SECONDS",
    "WaitConfig",
    "WaitTimeoutError",
    "calculate_next_interval",
    "get_wait_config",
    "sleep",
    "wait_for_count_increase",
    "wait_for_webhook_verified",
    "wait_with_backoff",
]
