from scoreboard.main import main

main()
