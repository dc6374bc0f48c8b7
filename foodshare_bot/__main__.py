from foodshare_bot.bot import run

run()
