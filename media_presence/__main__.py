from media_presence.cli import main

main()
