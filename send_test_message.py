"""Helper script to send test messages to SQS for testing."""
import json
import boto3
import sys
import os
from datetime import datetime, timezone
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configuration
LOCALSTACK_ENDPOINT = os.getenv("AWS_ENDPOINT_URL", "http://localhost:4566")
QUEUE_NAME = os.getenv("SQS_QUEUE", "sqs-input-test")
REGION = os.getenv("AWS_REGION", "us-east-1")


def sample_event(index: int, service: str) -> dict:
    """Build one sample log event."""
    return {
        "@timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        "service": service,
        "level": "ERROR" if index % 5 == 0 else "INFO",
        "message": f"sample event {index} from {service}",
    }


def build_body(count: int, service: str, as_array: bool) -> str:
    """Build a message body holding `count` events."""
    events = [sample_event(i, service) for i in range(count)]
    if as_array:
        return json.dumps(events)
    return "\n".join(json.dumps(e) for e in events)


def send_message(body: str, use_localstack: bool = True, create_queue: bool = False):
    """Send a message to SQS.

    Args:
        body: Message body
        use_localstack: Whether to use LocalStack (default: True)
        create_queue: Create the queue first if it does not exist
    """
    if use_localstack:
        sqs = boto3.client(
            'sqs',
            region_name=REGION,
            endpoint_url=LOCALSTACK_ENDPOINT
        )
    else:
        sqs = boto3.client('sqs', region_name=REGION)

    try:
        if create_queue:
            queue_url = sqs.create_queue(QueueName=QUEUE_NAME)['QueueUrl']
        else:
            queue_url = sqs.get_queue_url(QueueName=QUEUE_NAME)['QueueUrl']

        send_params = {
            'QueueUrl': queue_url,
            'MessageBody': body
        }

        if queue_url.endswith('.fifo'):
            send_params['MessageGroupId'] = "sqs-input-test"
            send_params['MessageDeduplicationId'] = f"test_{int(datetime.now().timestamp() * 1000)}"
            print("   FIFO Queue detected - using MessageGroupId: sqs-input-test")

        response = sqs.send_message(**send_params)

        print("✅ Message sent successfully!")
        print(f"   Message ID: {response['MessageId']}")
        print(f"   MD5 of body: {response['MD5OfMessageBody']}")
        print(f"   Queue: {queue_url}")

    except Exception as e:
        print(f"❌ Failed to send message: {str(e)}")
        sys.exit(1)


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Send test message to SQS")
    parser.add_argument(
        "--count",
        type=int,
        default=1,
        help="Number of events in the message body (default: 1)"
    )
    parser.add_argument(
        "--service",
        type=str,
        default="payments-service",
        help="Service name (default: payments-service)"
    )
    parser.add_argument(
        "--json-lines",
        action="store_true",
        help="Encode the body as JSON lines (for CODEC=json_lines) instead of a JSON array"
    )
    parser.add_argument(
        "--raw",
        type=str,
        help="Send this exact body instead of generated events"
    )
    parser.add_argument(
        "--create-queue",
        action="store_true",
        help="Create the queue if it does not exist"
    )
    parser.add_argument(
        "--production",
        action="store_true",
        help="Send to production SQS (not LocalStack)"
    )

    args = parser.parse_args()

    if args.raw is not None:
        body = args.raw
    elif args.count == 1 and not args.json_lines:
        body = json.dumps(sample_event(0, args.service))
    else:
        body = build_body(args.count, args.service, as_array=not args.json_lines)

    print("\n" + "="*80)
    print("  📤 SENDING TEST MESSAGE TO SQS")
    print("="*80)
    print(f"\nQueue: {QUEUE_NAME}")
    print(f"Body:\n{body}")
    print("\n" + "="*80 + "\n")

    send_message(body, use_localstack=not args.production, create_queue=args.create_queue)


if __name__ == "__main__":
    main()
