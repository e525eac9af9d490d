from ember.ember_cli import main

raise SystemExit(main())
