"""
Sending completion notifications to Slack. To enable, create a channel, add
the app owning the token into the channel, set `slack/channel` in the config
and the `SLACK_TOKEN` environment variable.

Delivery problems are logged and never fail the run.
"""

import logging
import os

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from .summary import RunSummary


def get_token() -> str | None:
    """
    Returns Slack token.
    """
    return os.environ.get('SLACK_TOKEN')


def send_message(text: str, channel: str | None) -> bool:
    """
    Send text as a Slack message. Returns True if the message was posted.
    """
    if not channel:
        logging.debug('Slack channel is not configured, not sending a message')
        return False
    if not (token := get_token()):
        logging.warning(f'SLACK_TOKEN is not set, can\'t send a message to {channel}')
        return False

    slack_client = WebClient(token=token)
    try:
        slack_client.api_call(
            'chat.postMessage',
            json={
                'channel': channel,
                'text': text,
            },
        )
    except SlackApiError as err:
        logging.error(f'Error posting to Slack: {err}')
        return False
    except OSError as err:
        logging.error(f'Can\'t reach Slack: {err}')
        return False
    return True


def summary_message(summary: RunSummary) -> str:
    """
    Slack `mrkdwn` message from the run summary.
    """
    if summary.success:
        header = f'✅ *{summary.title}* completed successfully'
    else:
        header = f'⭕ *{summary.title}* completed with errors'
    lines = [header] + [f'{key}: `{value}`' for key, value in summary.render()]
    return '\n'.join(lines)


def notify_completion(summary: RunSummary, channel: str | None) -> bool:
    return send_message(summary_message(summary), channel)
