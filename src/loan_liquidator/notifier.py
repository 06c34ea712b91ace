from telegram import Bot

from .utils import print_w_time


class ConsoleNotifier:
    async def send_message(self, message, silent=False):
        print_w_time(message)


class TelegramNotifier:
    '''
    Sends operator messages to a telegram chat. Delivery is
    best-effort: errors are printed and never raised.
    '''

    def __init__(self, token, chat_id, prefix=''):
        self.token = token
        self.chat_id = chat_id
        self.prefix = prefix

    async def send_message(self, message, silent=False):
        message = self.prefix + message
        print_w_time(message)
        try:
            bot = Bot(token=self.token)
            await bot.send_message(
                chat_id=self.chat_id,
                text=message,
                disable_notification=silent
            )
        except Exception as e:
            print_w_time(f'Unable to send telegram message: {str(e)}')
