from replystream.main import main

main()
